"""Current-tenant endpoints."""

from fastapi import APIRouter, Depends

from aiforge.constants.permissions import Permission, get_permissions_for_role
from aiforge.platform.errors import success_response
from aiforge.platform.tenant_context import TenantContext, require_permission
from aiforge.services.quota_guard import QuotaGuard

router = APIRouter(prefix="/api/tenant", tags=["tenant"])


@router.get("")
async def get_current_tenant(
    context: TenantContext = Depends(require_permission(Permission.TENANT_READ)),
):
    return success_response({
        "tenant": context.tenant.to_dict(),
        "role": context.role.value,
        "permissions": sorted(p.value for p in get_permissions_for_role(context.role)),
    })


@router.get("/quota")
async def get_quota(
    context: TenantContext = Depends(require_permission(Permission.TENANT_READ)),
):
    usage = QuotaGuard(context.db_session).get_usage(context.tenant_id)
    return success_response({"tenantId": context.tenant_id, "usage": usage})
