"""
Auth API Routes - register, login, refresh, switch tenant, me, logout.

SECURITY:
- Access token is returned in the body and set as an httpOnly cookie
- Refresh is an explicit call; protected routes never refresh implicitly
- Login failures use one message for unknown email and wrong password
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from aiforge.api.schemas.auth import (
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    SwitchTenantRequest,
)
from aiforge.config.auth_settings import get_auth_cookie_name, is_production
from aiforge.database.session import get_db_session
from aiforge.platform.errors import success_response
from aiforge.platform.tenant_context import (
    AuthenticatedUser,
    authenticate,
    get_optional_user,
)
from aiforge.services.auth_service import AuthService, AuthSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _session_response(session: AuthSession, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    response = success_response(session.to_dict(), status_code=status_code)
    response.set_cookie(
        key=get_auth_cookie_name(),
        value=session.tokens.access_token,
        max_age=session.tokens.expires_in,
        httponly=True,
        secure=is_production(),
        samesite="lax",
        path="/",
    )
    return response


@router.post("/register")
async def register(body: RegisterRequest, db: Session = Depends(get_db_session)):
    session = AuthService(db).register(
        email=body.email,
        password=body.password,
        name=body.name,
        tenant_name=body.tenant_name,
    )
    return _session_response(session, status.HTTP_201_CREATED)


@router.post("/login")
async def login(body: LoginRequest, db: Session = Depends(get_db_session)):
    session = AuthService(db).login(body.email, body.password, body.tenant_slug)
    return _session_response(session)


@router.post("/refresh")
async def refresh(body: RefreshRequest, db: Session = Depends(get_db_session)):
    session = AuthService(db).refresh(body.refresh_token)
    return _session_response(session)


@router.post("/switch-tenant")
async def switch_tenant(
    body: SwitchTenantRequest,
    auth: AuthenticatedUser = Depends(authenticate),
    db: Session = Depends(get_db_session),
):
    session = AuthService(db).switch_tenant(auth.user, body.tenant_id)
    return _session_response(session)


@router.get("/me")
async def me(
    auth: AuthenticatedUser = Depends(authenticate),
    db: Session = Depends(get_db_session),
):
    data = AuthService(db).describe(auth.user)
    data["session"] = {
        "tenantId": auth.claims.tenant_id,
        "role": auth.claims.role,
        "expiresAt": auth.claims.expiration_datetime,
    }
    return success_response(data)


@router.post("/logout")
async def logout(auth: Optional[AuthenticatedUser] = Depends(get_optional_user)):
    if auth is not None:
        logger.info("User logged out", extra={"user_id": auth.user_id})
    response = success_response({"message": "Logged out"})
    response.delete_cookie(key=get_auth_cookie_name(), path="/")
    return response
