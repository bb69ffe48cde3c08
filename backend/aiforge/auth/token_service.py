"""
Token issuance and verification.

This module provides:
- Signing of access and refresh tokens (HS256 by default)
- Verification that fails closed with one uniform error
- Token extraction from an inbound request

Extraction precedence: `Authorization: Bearer <token>` first, else the
auth cookie. No other source is honored.

The signing secret is process-wide configuration. When it is missing every
issue/verify call raises ConfigurationError (SERVER_ERROR, 500) so the
failure is visible to operators instead of looking like a 401.
"""

import time
import logging
from threading import Lock
from typing import Optional

import jwt
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError
from pydantic import ValidationError as PydanticValidationError
from starlette.requests import HTTPConnection

from aiforge.auth.jwt import (
    REFRESH_TOKEN_TYPE,
    AccessTokenClaims,
    RefreshTokenClaims,
    TokenPair,
)
from aiforge.config.auth_settings import (
    get_access_token_ttl,
    get_auth_cookie_name,
    get_jwt_algorithm,
    get_jwt_secret,
    get_refresh_token_ttl,
)
from aiforge.platform.errors import AuthenticationError

logger = logging.getLogger(__name__)

INVALID_TOKEN_MESSAGE = "Invalid or expired token"


class TokenVerificationError(AuthenticationError):
    """
    Any token failure: malformed, bad signature, expired or wrong type.

    The cause is logged but never returned to the caller.
    """

    def __init__(self):
        super().__init__(INVALID_TOKEN_MESSAGE)


class TokenService:
    """
    Issues and verifies signed session tokens.

    Usage:
        service = get_token_service()
        pair = service.issue_token_pair(claims)
        claims = service.verify_access_token(pair.access_token)
    """

    def __init__(
        self,
        secret: Optional[str] = None,
        algorithm: Optional[str] = None,
        access_ttl: Optional[int] = None,
        refresh_ttl: Optional[int] = None,
    ):
        # Unset values are read from the environment on every use
        self._secret = secret
        self._algorithm = algorithm
        self._access_ttl = access_ttl
        self._refresh_ttl = refresh_ttl

    @property
    def secret(self) -> str:
        if self._secret:
            return self._secret
        return get_jwt_secret()

    @property
    def algorithm(self) -> str:
        return self._algorithm or get_jwt_algorithm()

    @property
    def access_ttl(self) -> int:
        return self._access_ttl or get_access_token_ttl()

    @property
    def refresh_ttl(self) -> int:
        return self._refresh_ttl or get_refresh_token_ttl()

    def ensure_configured(self) -> None:
        """Raise ConfigurationError if no signing secret is available."""
        _ = self.secret

    def _sign(self, payload: dict, ttl: int) -> str:
        now = int(time.time())
        claims = dict(payload)
        claims["iat"] = now
        claims["exp"] = now + ttl
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)

    def _decode(self, token: str) -> dict:
        secret = self.secret
        if not token or not isinstance(token, str):
            raise TokenVerificationError()
        try:
            return jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "iat"]},
            )
        except ExpiredSignatureError:
            logger.info("Token expired")
            raise TokenVerificationError()
        except InvalidTokenError as e:
            logger.warning("Token verification failed", extra={"error_type": type(e).__name__})
            raise TokenVerificationError()

    def issue_access_token(self, claims: AccessTokenClaims, ttl: Optional[int] = None) -> str:
        return self._sign(claims.to_payload(), ttl or self.access_ttl)

    def issue_refresh_token(self, user_id: str, ttl: Optional[int] = None) -> str:
        return self._sign(RefreshTokenClaims(user_id=user_id).to_payload(), ttl or self.refresh_ttl)

    def issue_token_pair(self, claims: AccessTokenClaims) -> TokenPair:
        """Issue an access token and a refresh token for the same user."""
        return TokenPair(
            access_token=self.issue_access_token(claims),
            refresh_token=self.issue_refresh_token(claims.user_id),
            expires_in=self.access_ttl,
        )

    def verify_access_token(self, token: str) -> AccessTokenClaims:
        """
        Verify an access token and return its claims.

        Raises:
            TokenVerificationError: On any verification failure, including a
                refresh token presented as an access token
            ConfigurationError: If the signing secret is missing
        """
        payload = self._decode(token)
        if payload.get("type") == REFRESH_TOKEN_TYPE:
            logger.warning("Refresh token presented as access token")
            raise TokenVerificationError()
        try:
            return AccessTokenClaims.model_validate(payload)
        except PydanticValidationError:
            logger.warning("Access token missing required claims")
            raise TokenVerificationError()

    def verify_refresh_token(self, token: str) -> RefreshTokenClaims:
        payload = self._decode(token)
        if payload.get("type") != REFRESH_TOKEN_TYPE:
            logger.warning("Non-refresh token presented to refresh flow")
            raise TokenVerificationError()
        try:
            return RefreshTokenClaims.model_validate(payload)
        except PydanticValidationError:
            raise TokenVerificationError()


def extract_token(connection: HTTPConnection, cookie_name: Optional[str] = None) -> Optional[str]:
    """
    Extract a raw token from a request.

    A non-Bearer Authorization header is ignored and the cookie is tried.
    """
    auth_header = connection.headers.get("authorization")
    if auth_header:
        scheme, _, credentials = auth_header.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()

    token = connection.cookies.get(cookie_name or get_auth_cookie_name())
    return token or None


# Singleton instance
_token_service: Optional[TokenService] = None
_token_service_lock = Lock()


def get_token_service() -> TokenService:
    """Get the process-wide TokenService instance."""
    global _token_service
    if _token_service is None:
        with _token_service_lock:
            if _token_service is None:
                _token_service = TokenService()
    return _token_service
