"""Configuration for the AI Forge API."""

from aiforge.config.auth_settings import (
    RESERVED_SUBDOMAINS,
    get_access_token_ttl,
    get_auth_cookie_name,
    get_jwt_algorithm,
    get_jwt_secret,
    get_refresh_token_ttl,
    get_tenant_header_name,
)
from aiforge.config.quota_defaults import PLAN_QUOTAS, QuotaLimits, get_quota_limits

__all__ = [
    "RESERVED_SUBDOMAINS",
    "get_access_token_ttl",
    "get_auth_cookie_name",
    "get_jwt_algorithm",
    "get_jwt_secret",
    "get_refresh_token_ttl",
    "get_tenant_header_name",
    "PLAN_QUOTAS",
    "QuotaLimits",
    "get_quota_limits",
]
