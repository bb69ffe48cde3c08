"""
Request pipeline for tenant-scoped routes.

CRITICAL SECURITY REQUIREMENTS:
- Every protected route runs the stages below in this order, and each
  stage short-circuits with a terminal error response:
    1. authenticate            -> UNAUTHORIZED (401) / SERVER_ERROR (500)
    2. resolve_request_tenant  -> TENANT_NOT_FOUND (404)
    3. require_tenant_context  -> TENANT_ACCESS_DENIED (403)
    4. require_permission      -> FORBIDDEN (403)        (optional)
    5. require_quota           -> QUOTA_EXCEEDED (429)   (optional)
- The caller's role is taken from their ACTIVE membership in the resolved
  tenant, never from the token alone.
- Handlers receive a TenantContext and touch tenant data only through
  its gateway. The context is request-scoped and never global.
- An expired access token is rejected here. Refreshing is an explicit
  client call to /api/auth/refresh.

Usage:
    @router.get("/projects")
    async def list_projects(
        context: TenantContext = Depends(require_permission(Permission.PROJECT_READ)),
    ):
        return context.gateway.project.find_many()
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Union

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from aiforge.auth.jwt import AccessTokenClaims
from aiforge.auth.token_service import extract_token, get_token_service
from aiforge.constants.permissions import Permission, Role, parse_role
from aiforge.database.session import get_db_session
from aiforge.models.tenant import Tenant
from aiforge.models.tenant_member import TenantMember
from aiforge.models.user import User
from aiforge.platform.errors import (
    AuthenticationError,
    QuotaExceededError,
    TenantAccessDeniedError,
)
from aiforge.platform.rbac import PermissionConditions, check_permission_or_raise
from aiforge.platform.tenant_resolver import ResolvedTenant, TenantResolver
from aiforge.repositories.tenant_gateway import TenantDataGateway
from aiforge.services.membership_validator import MembershipValidator
from aiforge.services.quota_guard import QuotaGuard, QuotaResource, parse_resource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthenticatedUser:
    """Verified identity for the current request."""
    user: User
    claims: AccessTokenClaims

    @property
    def user_id(self) -> str:
        return self.user.id

    @property
    def email(self) -> str:
        return self.user.email


@dataclass
class TenantContext:
    """
    Everything a handler may use for the current request.

    tenant_id is the RESOLVED tenant, not the token's tenantId claim.
    """
    auth: AuthenticatedUser
    tenant_id: str
    tenant: Tenant
    membership: TenantMember
    role: Role
    gateway: TenantDataGateway
    db_session: Session = field(repr=False)

    @property
    def user(self) -> User:
        return self.auth.user

    @property
    def user_id(self) -> str:
        return self.auth.user_id

    def check_permission(
        self,
        permission: Union[Permission, str],
        owner_id: Optional[str] = None,
        tenant_id: Optional[str] = None,
    ) -> None:
        """Raise RBACError unless the caller may perform `permission`."""
        conditions = None
        if owner_id is not None or tenant_id is not None:
            conditions = PermissionConditions(owner_id=owner_id, tenant_id=tenant_id)
        check_permission_or_raise(self, permission, conditions)


def _authenticate_connection(request: Request, db: Session) -> AuthenticatedUser:
    token_service = get_token_service()
    # Missing secret is a 500 even when no token was sent
    token_service.ensure_configured()

    token = extract_token(request)
    if not token:
        raise AuthenticationError("Authentication required")

    claims = token_service.verify_access_token(token)

    user = db.query(User).filter(User.id == claims.user_id).first()
    if user is None or not user.is_active:
        logger.warning("Token subject is not an active user", extra={"path": request.url.path})
        raise AuthenticationError("Invalid or expired token")

    return AuthenticatedUser(user=user, claims=claims)


def authenticate(request: Request, db: Session = Depends(get_db_session)) -> AuthenticatedUser:
    """Stage 1: verify the access token and load the user."""
    auth = _authenticate_connection(request, db)
    request.state.user_id = auth.user_id
    return auth


def get_optional_user(
    request: Request,
    db: Session = Depends(get_db_session),
) -> Optional[AuthenticatedUser]:
    """Like authenticate, but anonymous or invalid credentials yield None."""
    try:
        return _authenticate_connection(request, db)
    except AuthenticationError:
        return None


def resolve_request_tenant(
    request: Request,
    auth: AuthenticatedUser = Depends(authenticate),
    db: Session = Depends(get_db_session),
) -> ResolvedTenant:
    """Stage 2: header, then subdomain, then /tenant/{slug} path."""
    return TenantResolver(db).resolve(request)


def require_tenant_context(
    request: Request,
    auth: AuthenticatedUser = Depends(authenticate),
    resolved: ResolvedTenant = Depends(resolve_request_tenant),
    db: Session = Depends(get_db_session),
) -> TenantContext:
    """Stage 3: the caller must hold an ACTIVE membership in the resolved tenant."""
    membership = MembershipValidator(db).get_active_membership(auth.user_id, resolved.tenant_id)
    if membership is None:
        logger.warning(
            "Tenant access denied",
            extra={
                "user_id": auth.user_id,
                "tenant_id": resolved.tenant_id,
                "source": resolved.source.value,
                "path": request.url.path,
            },
        )
        raise TenantAccessDeniedError()

    role = parse_role(membership.role)
    context = TenantContext(
        auth=auth,
        tenant_id=resolved.tenant_id,
        tenant=resolved.tenant,
        membership=membership,
        role=role,
        gateway=TenantDataGateway(db, resolved.tenant_id),
        db_session=db,
    )
    request.state.tenant_context = context
    return context


def _enforce_quota(context: TenantContext, resource: Union[QuotaResource, str]) -> None:
    resource = parse_resource(resource)
    result = QuotaGuard(context.db_session).check(context.tenant_id, resource)
    if not result.allowed:
        logger.warning(
            "Quota exceeded",
            extra={
                "tenant_id": context.tenant_id,
                "user_id": context.user_id,
                "resource": resource.value,
                "current": result.current,
                "limit": result.limit,
            },
        )
        raise QuotaExceededError(resource.value, result.current, result.limit)


def require_permission(
    permission: Union[Permission, str],
    quota: Optional[Union[QuotaResource, str]] = None,
) -> Callable[..., TenantContext]:
    """
    Stage 4 (and optionally 5) as a single dependency, so the permission
    check always runs before the quota check.
    """

    def dependency(context: TenantContext = Depends(require_tenant_context)) -> TenantContext:
        check_permission_or_raise(context, permission)
        if quota is not None:
            _enforce_quota(context, quota)
        return context

    return dependency


def require_quota(resource: Union[QuotaResource, str]) -> Callable[..., TenantContext]:
    """Stage 5 on its own, for routes without a permission check."""
    parse_resource(resource)

    def dependency(context: TenantContext = Depends(require_tenant_context)) -> TenantContext:
        _enforce_quota(context, resource)
        return context

    return dependency


def reserve_quota_or_raise(context: TenantContext, resource: Union[QuotaResource, str], amount: int = 1) -> None:
    """
    Atomically take quota for a create.

    The pipeline check is advisory under concurrency; this conditional
    increment is what actually prevents over-admission.
    """
    guard = QuotaGuard(context.db_session)
    if not guard.try_reserve(context.tenant_id, resource, amount):
        result = guard.check(context.tenant_id, resource)
        raise QuotaExceededError(parse_resource(resource).value, result.current, result.limit)
