"""
Account and session flows: register, login, refresh, switch tenant.

Tokens always reflect an ACTIVE membership looked up at issue time. The
token's role and tenantId claims are informational; the request pipeline
re-reads the membership on every request.
"""

import logging
import re
import time
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from aiforge.auth.jwt import AccessTokenClaims, TokenPair
from aiforge.auth.passwords import hash_password, verify_password
from aiforge.auth.token_service import TokenService, get_token_service
from aiforge.config.quota_defaults import get_quota_limits
from aiforge.constants.permissions import Role
from aiforge.models.tenant import Tenant, TenantPlan, TenantStatus
from aiforge.models.tenant_member import MemberStatus, TenantMember
from aiforge.models.tenant_quota import TenantQuota
from aiforge.models.user import User
from aiforge.platform.errors import (
    AuthenticationError,
    ConflictError,
    NoTenantAccessError,
    TenantAccessDeniedError,
    TenantInactiveError,
)
from aiforge.services.membership_validator import MembershipValidator

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"


def slugify(name: Optional[str]) -> str:
    """
    Lowercase, non-alphanumerics collapsed to single dashes.

    Names with no usable characters get a time-based slug.
    """
    if name:
        slug = re.sub(r"[^a-z0-9]", "-", name.lower())
        slug = re.sub(r"-+", "-", slug).strip("-")
        if slug:
            return slug[:100]
    return f"tenant-{int(time.time() * 1000)}"


@dataclass
class AuthSession:
    """Result of a successful register/login/refresh/switch."""
    user: User
    tenant: Tenant
    role: Role
    tokens: TokenPair

    def to_dict(self) -> dict:
        user = self.user.to_dict()
        user["tenantId"] = self.tenant.id
        user["role"] = self.role.value
        return {
            "user": user,
            "tenant": self.tenant.to_dict(),
            "token": self.tokens.access_token,
            "refreshToken": self.tokens.refresh_token,
            "expiresIn": self.tokens.expires_in,
        }


class AuthService:
    """Commits its own transactions; each public method is one unit of work."""

    def __init__(self, session: Session, token_service: Optional[TokenService] = None):
        self.session = session
        self.token_service = token_service or get_token_service()
        self.memberships = MembershipValidator(session)

    def _issue(self, user: User, membership: TenantMember) -> AuthSession:
        role = Role(membership.role)
        claims = AccessTokenClaims(
            user_id=user.id,
            email=user.email,
            tenant_id=membership.tenant_id,
            role=role.value,
        )
        return AuthSession(
            user=user,
            tenant=membership.tenant,
            role=role,
            tokens=self.token_service.issue_token_pair(claims),
        )

    def _select_membership(
        self,
        user: User,
        memberships: List[TenantMember],
        tenant_slug: Optional[str] = None,
    ) -> TenantMember:
        if tenant_slug:
            for membership in memberships:
                if membership.tenant.slug == tenant_slug.lower():
                    return membership
            raise TenantAccessDeniedError("You do not have access to the requested tenant")

        if user.current_tenant_id:
            for membership in memberships:
                if membership.tenant_id == user.current_tenant_id:
                    return membership

        if memberships:
            return memberships[0]
        raise NoTenantAccessError()

    def register(
        self,
        email: str,
        password: str,
        name: Optional[str] = None,
        tenant_name: Optional[str] = None,
    ) -> AuthSession:
        """
        Create user, tenant, ADMIN membership and quota in one transaction.

        Raises:
            ConflictError: USER_EXISTS or TENANT_EXISTS
            ConfigurationError: If the signing secret is missing
        """
        # Fail before writing anything if tokens cannot be issued
        self.token_service.ensure_configured()

        email = email.strip().lower()
        if self.session.query(User.id).filter(User.email == email).first():
            raise ConflictError("User already exists", code="USER_EXISTS")

        slug = slugify(tenant_name)
        if self.session.query(Tenant.id).filter(Tenant.slug == slug).first():
            raise ConflictError("Tenant name is already taken", code="TENANT_EXISTS")

        display_name = name or email.split("@")[0]
        try:
            user = User(email=email, name=display_name, password_hash=hash_password(password))
            self.session.add(user)
            self.session.flush()

            tenant = Tenant(
                name=tenant_name or f"{display_name}'s workspace",
                slug=slug,
                admin_id=user.id,
                plan=TenantPlan.FREE,
                status=TenantStatus.ACTIVE,
            )
            self.session.add(tenant)
            self.session.flush()

            membership = TenantMember(
                tenant_id=tenant.id,
                user_id=user.id,
                role=Role.ADMIN,
                status=MemberStatus.ACTIVE,
            )
            quota = TenantQuota(
                tenant_id=tenant.id,
                used_users=1,
                **get_quota_limits(tenant.plan).as_columns(),
            )
            self.session.add_all([membership, quota])
            user.current_tenant_id = tenant.id
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            logger.warning("Registration conflict", extra={"tenant_slug": slug})
            raise ConflictError("User or tenant already exists")

        self.session.refresh(membership)
        logger.info(
            "User registered",
            extra={"user_id": user.id, "tenant_id": tenant.id},
        )
        return self._issue(user, membership)

    def login(self, email: str, password: str, tenant_slug: Optional[str] = None) -> AuthSession:
        """
        Raises:
            AuthenticationError: Unknown email or wrong password (same message)
            TenantAccessDeniedError: tenant_slug given but no active membership there
            NoTenantAccessError: No active membership at all
        """
        self.token_service.ensure_configured()

        user = self.session.query(User).filter(User.email == email.strip().lower()).first()
        if user is None or not user.is_active or not verify_password(password, user.password_hash):
            logger.warning("Login failed")
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

        memberships = self.memberships.list_active_memberships(user.id)
        membership = self._select_membership(user, memberships, tenant_slug)

        if user.current_tenant_id != membership.tenant_id:
            user.current_tenant_id = membership.tenant_id
        self.session.commit()

        logger.info("User logged in", extra={"user_id": user.id, "tenant_id": membership.tenant_id})
        return self._issue(user, membership)

    def refresh(self, refresh_token: str) -> AuthSession:
        """
        Exchange a refresh token for a new token pair in the user's current tenant.

        Raises:
            TokenVerificationError: Invalid, expired or non-refresh token
            NoTenantAccessError: No active membership left
        """
        claims = self.token_service.verify_refresh_token(refresh_token)
        user = self.session.query(User).filter(User.id == claims.user_id).first()
        if user is None or not user.is_active:
            raise AuthenticationError("Invalid or expired token")

        memberships = self.memberships.list_active_memberships(user.id)
        membership = self._select_membership(user, memberships)
        return self._issue(user, membership)

    def switch_tenant(self, user: User, tenant_id: str) -> AuthSession:
        """
        Raises:
            TenantAccessDeniedError: No active membership in the tenant
            TenantInactiveError: Membership exists but the tenant is not ACTIVE
        """
        membership = self.memberships.get_active_membership(user.id, tenant_id)
        if membership is None:
            logger.warning(
                "Tenant switch denied",
                extra={"user_id": user.id, "tenant_id": tenant_id},
            )
            raise TenantAccessDeniedError("You do not have access to the requested tenant")

        if not membership.tenant.is_active:
            raise TenantInactiveError()

        user.current_tenant_id = tenant_id
        self.session.commit()
        logger.info("Tenant switched", extra={"user_id": user.id, "tenant_id": tenant_id})
        return self._issue(user, membership)

    def describe(self, user: User) -> dict:
        """User plus active memberships, for /api/auth/me."""
        memberships = self.memberships.list_active_memberships(user.id)
        data = user.to_dict()
        data["tenants"] = [
            {
                "tenant": m.tenant.to_dict(),
                "role": m.role.value,
                "joinedAt": m.joined_at,
            }
            for m in memberships
        ]
        return data
