import re
from typing import Optional

from pydantic import Field, field_validator

from aiforge.api.schemas.base import RequestModel

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _validate_email(value: str) -> str:
    if not _EMAIL_RE.match(value):
        raise ValueError("Invalid email address")
    return value.lower()


class RegisterRequest(RequestModel):
    email: str = Field(..., max_length=255)
    password: str = Field(..., min_length=6, max_length=256)
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    tenant_name: Optional[str] = Field(None, min_length=1, max_length=255)

    @field_validator("email")
    @classmethod
    def email_format(cls, v: str) -> str:
        return _validate_email(v)


class LoginRequest(RequestModel):
    email: str = Field(..., max_length=255)
    password: str = Field(..., min_length=6, max_length=256)
    tenant_slug: Optional[str] = Field(None, min_length=1, max_length=100)

    @field_validator("email")
    @classmethod
    def email_format(cls, v: str) -> str:
        return _validate_email(v)


class RefreshRequest(RequestModel):
    refresh_token: str = Field(..., min_length=1)


class SwitchTenantRequest(RequestModel):
    tenant_id: str = Field(..., min_length=1, max_length=36)
