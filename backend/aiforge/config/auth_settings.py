"""
Authentication and tenancy settings.

All values are read from the environment at call time so that importing
this module never fails on missing configuration. The signing secret is the
only mandatory value; its absence is a server configuration error (500),
never an authentication failure (401).
"""

import os
import logging

from aiforge.platform.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_JWT_ALGORITHM = "HS256"
DEFAULT_ACCESS_TTL_SECONDS = 60 * 60           # 1 hour
DEFAULT_REFRESH_TTL_SECONDS = 7 * 24 * 60 * 60  # 7 days
DEFAULT_AUTH_COOKIE_NAME = "auth-token"
DEFAULT_TENANT_HEADER_NAME = "x-tenant-id"

# Subdomains that never identify a tenant
RESERVED_SUBDOMAINS = frozenset(["www", "api", "admin", "app", "localhost"])

# Path-prefix convention: /tenant/{slug}/...
TENANT_PATH_PREFIX = "tenant"


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer setting", extra={"setting": name})
        return default
    if value <= 0:
        logger.warning("Ignoring non-positive setting", extra={"setting": name})
        return default
    return value


def get_jwt_secret() -> str:
    """
    Get the token signing secret.

    Raises:
        ConfigurationError: If JWT_SECRET is not set
    """
    secret = os.getenv("JWT_SECRET", "")
    if not secret:
        logger.error("JWT_SECRET is not configured")
        raise ConfigurationError("Server configuration error")
    return secret


def get_jwt_algorithm() -> str:
    return os.getenv("JWT_ALGORITHM", DEFAULT_JWT_ALGORITHM)


def get_access_token_ttl() -> int:
    return _int_env("JWT_ACCESS_TTL_SECONDS", DEFAULT_ACCESS_TTL_SECONDS)


def get_refresh_token_ttl() -> int:
    return _int_env("JWT_REFRESH_TTL_SECONDS", DEFAULT_REFRESH_TTL_SECONDS)


def get_auth_cookie_name() -> str:
    return os.getenv("AUTH_COOKIE_NAME", DEFAULT_AUTH_COOKIE_NAME)


def get_tenant_header_name() -> str:
    return os.getenv("TENANT_HEADER_NAME", DEFAULT_TENANT_HEADER_NAME).lower()


def is_production() -> bool:
    return os.getenv("ENV", "development").lower() == "production"
