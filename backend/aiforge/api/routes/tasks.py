"""
Tasks API Routes.

SECURITY:
- task:* permissions; a MEMBER may not update a task assigned to someone else
- Setting or changing assigneeId additionally needs task:assign, and the
  assignee must be an active member of the tenant
- Code generation takes one `aiRequests` unit, released if the AI call fails
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from aiforge.api.schemas.resources import TaskCreate, TaskUpdate
from aiforge.constants.permissions import Permission
from aiforge.integrations.openai.client import CompletionClient, completion_client_dependency
from aiforge.models.enums import TaskStatus
from aiforge.platform.errors import NotFoundError, ValidationError, success_response
from aiforge.platform.tenant_context import TenantContext, require_permission
from aiforge.services import analysis_service
from aiforge.services.membership_validator import MembershipValidator
from aiforge.services.quota_guard import QuotaResource

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


def _check_assignee(context: TenantContext, assignee_id: Optional[str]) -> None:
    if assignee_id is None:
        return
    context.check_permission(Permission.TASK_ASSIGN)
    if MembershipValidator(context.db_session).get_active_membership(assignee_id, context.tenant_id) is None:
        raise ValidationError("Assignee is not a member of this tenant")


@router.get("")
async def list_tasks(
    module_id: Optional[str] = Query(None, alias="moduleId"),
    status_filter: Optional[TaskStatus] = Query(None, alias="status"),
    assignee_id: Optional[str] = Query(None, alias="assigneeId"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    context: TenantContext = Depends(require_permission(Permission.TASK_READ)),
):
    where = {}
    if module_id:
        where["module_id"] = module_id
    if status_filter:
        where["status"] = status_filter
    if assignee_id:
        where["assignee_id"] = assignee_id
    tasks = context.gateway.task.find_many(where, order_by="order", limit=limit, offset=offset)
    return success_response({
        "tasks": [t.to_dict() for t in tasks],
        "total": context.gateway.task.count(where),
    })


@router.post("")
async def create_task(
    body: TaskCreate,
    context: TenantContext = Depends(require_permission(Permission.TASK_CREATE)),
):
    _check_assignee(context, body.assignee_id)
    task = context.gateway.task.create(body.model_dump())
    context.db_session.commit()
    return success_response(task.to_dict(), status_code=status.HTTP_201_CREATED)


@router.get("/{task_id}")
async def get_task(
    task_id: str,
    context: TenantContext = Depends(require_permission(Permission.TASK_READ)),
):
    task = context.gateway.task.get_or_404(task_id, code="TASK_NOT_FOUND")
    return success_response(task.to_dict())


@router.put("/{task_id}")
async def update_task(
    task_id: str,
    body: TaskUpdate,
    context: TenantContext = Depends(require_permission(Permission.TASK_UPDATE)),
):
    gateway = context.gateway
    task = gateway.task.get_or_404(task_id, code="TASK_NOT_FOUND")
    if task.assignee_id:
        context.check_permission(
            Permission.TASK_UPDATE, owner_id=task.assignee_id, tenant_id=task.tenant_id
        )

    changes = body.changes()
    if "assignee_id" in changes and changes["assignee_id"] != task.assignee_id:
        _check_assignee(context, changes["assignee_id"])

    if changes and gateway.task.update({"id": task_id}, changes) == 0:
        raise NotFoundError("Task", code="TASK_NOT_FOUND")
    context.db_session.commit()
    return success_response(gateway.task.get_or_404(task_id).to_dict())


@router.delete("/{task_id}")
async def delete_task(
    task_id: str,
    context: TenantContext = Depends(require_permission(Permission.TASK_DELETE)),
):
    if context.gateway.task.delete({"id": task_id}) == 0:
        raise NotFoundError("Task", code="TASK_NOT_FOUND")
    context.db_session.commit()
    logger.info("Task deleted", extra={"tenant_id": context.tenant_id, "task_id": task_id})
    return success_response({"id": task_id, "deleted": True})


@router.post("/{task_id}/generate-code")
async def generate_code(
    task_id: str,
    context: TenantContext = Depends(
        require_permission(Permission.TASK_GENERATE_CODE, quota=QuotaResource.AI_REQUESTS)
    ),
    client: CompletionClient = Depends(completion_client_dependency),
):
    result = await analysis_service.generate_task_code(context, task_id, client)
    return success_response(result)
