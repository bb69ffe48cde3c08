"""Modules API Routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from aiforge.api.schemas.resources import ModuleCreate, ModuleUpdate
from aiforge.constants.permissions import Permission
from aiforge.platform.errors import NotFoundError, ValidationError, success_response
from aiforge.platform.tenant_context import TenantContext, require_permission

router = APIRouter(prefix="/api/modules", tags=["modules"])


def _would_create_cycle(gateway, module_id: str, parent_id: Optional[str]) -> bool:
    """True if module_id appears in the parent chain starting at parent_id."""
    seen = set()
    while parent_id and parent_id not in seen:
        if parent_id == module_id:
            return True
        seen.add(parent_id)
        parent = gateway.module.get_by_id(parent_id)
        parent_id = parent.parent_id if parent is not None else None
    return False


@router.get("")
async def list_modules(
    project_id: Optional[str] = Query(None, alias="projectId"),
    requirement_id: Optional[str] = Query(None, alias="requirementId"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    context: TenantContext = Depends(require_permission(Permission.MODULE_READ)),
):
    where = {}
    if project_id:
        where["project_id"] = project_id
    if requirement_id:
        where["requirement_id"] = requirement_id
    modules = context.gateway.module.find_many(where, order_by="order", limit=limit, offset=offset)
    return success_response({
        "modules": [m.to_dict() for m in modules],
        "total": context.gateway.module.count(where),
    })


@router.post("")
async def create_module(
    body: ModuleCreate,
    context: TenantContext = Depends(require_permission(Permission.MODULE_CREATE)),
):
    module = context.gateway.module.create(body.model_dump())
    context.db_session.commit()
    return success_response(module.to_dict(), status_code=status.HTTP_201_CREATED)


@router.get("/{module_id}")
async def get_module(
    module_id: str,
    context: TenantContext = Depends(require_permission(Permission.MODULE_READ)),
):
    gateway = context.gateway
    module = gateway.module.get_or_404(module_id, code="MODULE_NOT_FOUND")
    data = module.to_dict()
    data["tasks"] = [t.to_dict() for t in gateway.task.find_many({"module_id": module.id}, order_by="order")]
    data["children"] = [m.to_dict() for m in gateway.module.find_many({"parent_id": module.id}, order_by="order")]
    return success_response(data)


@router.put("/{module_id}")
async def update_module(
    module_id: str,
    body: ModuleUpdate,
    context: TenantContext = Depends(require_permission(Permission.MODULE_UPDATE)),
):
    changes = body.changes()
    gateway = context.gateway
    gateway.module.get_or_404(module_id, code="MODULE_NOT_FOUND")
    if _would_create_cycle(gateway, module_id, changes.get("parent_id")):
        raise ValidationError("A module cannot be its own ancestor")

    if changes and gateway.module.update({"id": module_id}, changes) == 0:
        raise NotFoundError("Module", code="MODULE_NOT_FOUND")
    context.db_session.commit()
    return success_response(gateway.module.get_or_404(module_id).to_dict())


@router.delete("/{module_id}")
async def delete_module(
    module_id: str,
    context: TenantContext = Depends(require_permission(Permission.MODULE_DELETE)),
):
    if context.gateway.module.delete({"id": module_id}) == 0:
        raise NotFoundError("Module", code="MODULE_NOT_FOUND")
    context.db_session.commit()
    return success_response({"id": module_id, "deleted": True})
