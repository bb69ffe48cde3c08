"""
Requirements API Routes.

SECURITY:
- requirement:* permissions; a MEMBER may only change requirements they created
- Creating takes one `requirements` quota unit atomically
- Analysis takes one `aiRequests` unit, released if the AI call fails
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from aiforge.api.schemas.resources import RequirementCreate, RequirementUpdate
from aiforge.constants.permissions import Permission
from aiforge.integrations.openai.client import CompletionClient, completion_client_dependency
from aiforge.models.enums import RequirementStatus
from aiforge.platform.errors import NotFoundError, success_response
from aiforge.platform.tenant_context import (
    TenantContext,
    require_permission,
    reserve_quota_or_raise,
)
from aiforge.services import analysis_service
from aiforge.services.quota_guard import QuotaGuard, QuotaResource

router = APIRouter(prefix="/api/requirements", tags=["requirements"])


@router.get("")
async def list_requirements(
    project_id: Optional[str] = Query(None, alias="projectId"),
    status_filter: Optional[RequirementStatus] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    context: TenantContext = Depends(require_permission(Permission.REQUIREMENT_READ)),
):
    where = {}
    if project_id:
        where["project_id"] = project_id
    if status_filter:
        where["status"] = status_filter
    requirements = context.gateway.requirement.find_many(
        where, order_by="-created_at", limit=limit, offset=offset
    )
    return success_response({
        "requirements": [r.to_dict() for r in requirements],
        "total": context.gateway.requirement.count(where),
    })


@router.post("")
async def create_requirement(
    body: RequirementCreate,
    context: TenantContext = Depends(
        require_permission(Permission.REQUIREMENT_CREATE, quota=QuotaResource.REQUIREMENTS)
    ),
):
    # Parent check first so a bad projectId does not consume quota
    context.gateway.project.get_or_404(body.project_id, code="PROJECT_NOT_FOUND")
    reserve_quota_or_raise(context, QuotaResource.REQUIREMENTS)

    data = body.model_dump()
    data["created_by"] = context.user_id
    requirement = context.gateway.requirement.create(data)
    context.db_session.commit()
    return success_response(requirement.to_dict(), status_code=status.HTTP_201_CREATED)


@router.get("/{requirement_id}")
async def get_requirement(
    requirement_id: str,
    context: TenantContext = Depends(require_permission(Permission.REQUIREMENT_READ)),
):
    gateway = context.gateway
    requirement = gateway.requirement.get_or_404(requirement_id, code="REQUIREMENT_NOT_FOUND")
    analysis = gateway.requirement_analysis.latest_for(requirement.id)
    data = requirement.to_dict()
    data["analysis"] = analysis.to_dict() if analysis else None
    data["modules"] = [
        m.to_dict()
        for m in gateway.module.find_many({"requirement_id": requirement.id}, order_by="order")
    ]
    return success_response(data)


@router.put("/{requirement_id}")
async def update_requirement(
    requirement_id: str,
    body: RequirementUpdate,
    context: TenantContext = Depends(require_permission(Permission.REQUIREMENT_UPDATE)),
):
    gateway = context.gateway
    requirement = gateway.requirement.get_or_404(requirement_id, code="REQUIREMENT_NOT_FOUND")
    context.check_permission(
        Permission.REQUIREMENT_UPDATE,
        owner_id=requirement.created_by,
        tenant_id=requirement.tenant_id,
    )

    changes = body.changes()
    if changes and gateway.requirement.update({"id": requirement_id}, changes) == 0:
        raise NotFoundError("Requirement", code="REQUIREMENT_NOT_FOUND")
    context.db_session.commit()
    return success_response(gateway.requirement.get_or_404(requirement_id).to_dict())


@router.delete("/{requirement_id}")
async def delete_requirement(
    requirement_id: str,
    context: TenantContext = Depends(require_permission(Permission.REQUIREMENT_DELETE)),
):
    gateway = context.gateway
    requirement = gateway.requirement.get_or_404(requirement_id, code="REQUIREMENT_NOT_FOUND")
    context.check_permission(
        Permission.REQUIREMENT_DELETE,
        owner_id=requirement.created_by,
        tenant_id=requirement.tenant_id,
    )

    if gateway.requirement.delete({"id": requirement_id}) == 0:
        raise NotFoundError("Requirement", code="REQUIREMENT_NOT_FOUND")
    QuotaGuard(context.db_session).release(context.tenant_id, QuotaResource.REQUIREMENTS)
    context.db_session.commit()
    return success_response({"id": requirement_id, "deleted": True})


@router.post("/{requirement_id}/analyze")
async def analyze_requirement(
    requirement_id: str,
    context: TenantContext = Depends(
        require_permission(Permission.REQUIREMENT_ANALYZE, quota=QuotaResource.AI_REQUESTS)
    ),
    client: CompletionClient = Depends(completion_client_dependency),
):
    result = await analysis_service.analyze_requirement(context, requirement_id, client)
    return success_response(result)
