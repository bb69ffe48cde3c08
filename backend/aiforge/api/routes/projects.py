"""
Projects API Routes.

SECURITY:
- project:read / create / update / delete permissions
- Creating a project takes one `projects` quota unit atomically
- Update and delete carry an owner condition; only ADMIN/MANAGER may act
  on projects owned by someone else
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from aiforge.api.schemas.resources import ProjectCreate, ProjectUpdate
from aiforge.constants.permissions import Permission
from aiforge.models.enums import ProjectStatus
from aiforge.platform.errors import NotFoundError, success_response
from aiforge.platform.tenant_context import (
    TenantContext,
    require_permission,
    reserve_quota_or_raise,
)
from aiforge.services.quota_guard import QuotaGuard, QuotaResource

router = APIRouter(prefix="/api/projects", tags=["projects"])


@router.get("")
async def list_projects(
    status_filter: Optional[ProjectStatus] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    context: TenantContext = Depends(require_permission(Permission.PROJECT_READ)),
):
    where = {"status": status_filter} if status_filter else None
    projects = context.gateway.project.find_many(
        where, order_by="-created_at", limit=limit, offset=offset
    )
    return success_response({
        "projects": [p.to_dict() for p in projects],
        "total": context.gateway.project.count(where),
    })


@router.post("")
async def create_project(
    body: ProjectCreate,
    context: TenantContext = Depends(
        require_permission(Permission.PROJECT_CREATE, quota=QuotaResource.PROJECTS)
    ),
):
    reserve_quota_or_raise(context, QuotaResource.PROJECTS)
    data = body.model_dump()
    data["owner_id"] = context.user_id
    project = context.gateway.project.create(data)
    context.db_session.commit()
    return success_response(project.to_dict(), status_code=status.HTTP_201_CREATED)


@router.get("/{project_id}")
async def get_project(
    project_id: str,
    context: TenantContext = Depends(require_permission(Permission.PROJECT_READ)),
):
    project = context.gateway.project.get_or_404(project_id, code="PROJECT_NOT_FOUND")
    data = project.to_dict()
    data["requirementCount"] = context.gateway.requirement.count({"project_id": project.id})
    data["moduleCount"] = context.gateway.module.count({"project_id": project.id})
    return success_response(data)


@router.put("/{project_id}")
async def update_project(
    project_id: str,
    body: ProjectUpdate,
    context: TenantContext = Depends(require_permission(Permission.PROJECT_UPDATE)),
):
    gateway = context.gateway
    project = gateway.project.get_or_404(project_id, code="PROJECT_NOT_FOUND")
    context.check_permission(
        Permission.PROJECT_UPDATE, owner_id=project.owner_id, tenant_id=project.tenant_id
    )

    changes = body.changes()
    if changes and gateway.project.update({"id": project_id}, changes) == 0:
        raise NotFoundError("Project", code="PROJECT_NOT_FOUND")
    context.db_session.commit()
    return success_response(gateway.project.get_or_404(project_id).to_dict())


@router.delete("/{project_id}")
async def delete_project(
    project_id: str,
    context: TenantContext = Depends(require_permission(Permission.PROJECT_DELETE)),
):
    gateway = context.gateway
    project = gateway.project.get_or_404(project_id, code="PROJECT_NOT_FOUND")
    context.check_permission(
        Permission.PROJECT_DELETE, owner_id=project.owner_id, tenant_id=project.tenant_id
    )

    # Requirements go with the project (ON DELETE CASCADE)
    requirement_count = gateway.requirement.count({"project_id": project_id})
    if gateway.project.delete({"id": project_id}) == 0:
        raise NotFoundError("Project", code="PROJECT_NOT_FOUND")

    quota = QuotaGuard(context.db_session)
    quota.release(context.tenant_id, QuotaResource.PROJECTS)
    if requirement_count:
        quota.release(context.tenant_id, QuotaResource.REQUIREMENTS, requirement_count)
    context.db_session.commit()
    return success_response({"id": project_id, "deleted": True})
