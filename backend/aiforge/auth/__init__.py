"""
Authentication for AI Forge.

Tokens are issued and verified locally with a shared signing secret.
"""

from aiforge.auth.jwt import AccessTokenClaims, RefreshTokenClaims, TokenPair
from aiforge.auth.passwords import hash_password, verify_password
from aiforge.auth.token_service import (
    TokenService,
    TokenVerificationError,
    extract_token,
    get_token_service,
)

__all__ = [
    "AccessTokenClaims",
    "RefreshTokenClaims",
    "TokenPair",
    "hash_password",
    "verify_password",
    "TokenService",
    "TokenVerificationError",
    "extract_token",
    "get_token_service",
]
