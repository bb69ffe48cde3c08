"""
JWT claims models for tokens issued by this service.

Two token classes are issued together at login/registration:

- Access token (1 hour): {userId, email, tenantId?, role?, iat, exp}
- Refresh token (7 days): {userId, type: "refresh", iat, exp}

Claim names on the wire are camelCase; Python attributes are snake_case.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

REFRESH_TOKEN_TYPE = "refresh"


class AccessTokenClaims(BaseModel):
    """Identity, tenant and role carried by an access token."""

    user_id: str = Field(..., alias="userId", min_length=1)
    email: str = Field(..., min_length=1)
    tenant_id: Optional[str] = Field(None, alias="tenantId")
    role: Optional[str] = None

    # Set on decode, ignored on issue
    iat: Optional[int] = None
    exp: Optional[int] = None

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    def to_payload(self) -> dict:
        """Signed claim set without the registered time claims."""
        return self.model_dump(by_alias=True, exclude_none=True, exclude={"iat", "exp"})

    def identity(self) -> tuple:
        """Claims compared for equality after a round trip."""
        return (self.user_id, self.email, self.tenant_id, self.role)

    @property
    def expiration_datetime(self) -> Optional[datetime]:
        if self.exp is None:
            return None
        return datetime.fromtimestamp(self.exp, tz=timezone.utc)


class RefreshTokenClaims(BaseModel):
    """Claims of a refresh token. Carries only the user id."""

    user_id: str = Field(..., alias="userId", min_length=1)
    type: str = REFRESH_TOKEN_TYPE
    iat: Optional[int] = None
    exp: Optional[int] = None

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    def to_payload(self) -> dict:
        return {"userId": self.user_id, "type": REFRESH_TOKEN_TYPE}


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = "Bearer"

    def to_dict(self) -> dict:
        return {
            "accessToken": self.access_token,
            "refreshToken": self.refresh_token,
            "expiresIn": self.expires_in,
            "tokenType": self.token_type,
        }
