"""
AI-backed workflows on tenant data.

Requirement analysis: PENDING -> ANALYZING -> ANALYZED, storing the
analysis and creating modules and tasks. If the AI call fails, or its
result cannot be stored, the requirement returns to PENDING.

Code generation: IN_PROGRESS -> REVIEW, storing the code and its language.
If the AI call or the final write fails the task returns to TODO.

Both flows spend one aiRequests quota unit, reserved before the call and
released on either failure. All reads and writes go through the request's
TenantDataGateway.
"""

import logging
import os
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from aiforge.integrations.openai.client import CompletionClient
from aiforge.integrations.openai.exceptions import CompletionError
from aiforge.models.enums import RequirementStatus, TaskStatus
from aiforge.models.requirement import Requirement
from aiforge.models.task import Task
from aiforge.platform.errors import UpstreamServiceError
from aiforge.platform.tenant_context import TenantContext, reserve_quota_or_raise
from aiforge.services.quota_guard import QuotaGuard, QuotaResource

logger = logging.getLogger(__name__)

DEFAULT_CODE_LANGUAGE = "typescript"

_LANGUAGE_BY_EXTENSION = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".css": "css",
    ".html": "html",
    ".json": "json",
}


def detect_language(file_path: Optional[str]) -> str:
    """Map a file extension to a code language, defaulting to typescript."""
    if not file_path:
        return DEFAULT_CODE_LANGUAGE
    _, extension = os.path.splitext(file_path.lower())
    return _LANGUAGE_BY_EXTENSION.get(extension, DEFAULT_CODE_LANGUAGE)


def _set_requirement_status(context: TenantContext, requirement_id: str, status: RequirementStatus) -> None:
    context.gateway.requirement.update({"id": requirement_id}, {"status": status})
    context.db_session.commit()


def _set_task_status(context: TenantContext, task_id: str, status: TaskStatus) -> None:
    context.gateway.task.update({"id": task_id}, {"status": status})
    context.db_session.commit()


def _release_ai_request(context: TenantContext) -> None:
    QuotaGuard(context.db_session).release(context.tenant_id, QuotaResource.AI_REQUESTS)
    context.db_session.commit()


def _store_analysis(gateway, requirement: Requirement, result) -> tuple:
    """Persist the analysis and its modules and tasks. Flushes, never commits."""
    analysis = gateway.requirement_analysis.create({
        "requirement_id": requirement.id,
        "summary": result.summary,
        "key_features": result.key_features,
        "complexity": result.complexity,
        "estimated_hours": result.estimated_hours,
        "suggestions": result.suggestions,
    })

    modules = []
    for module_index, module_data in enumerate(result.modules):
        module = gateway.module.create({
            "project_id": requirement.project_id,
            "requirement_id": requirement.id,
            "name": module_data.name,
            "description": module_data.description,
            "type": module_data.type,
            "priority": module_data.priority,
            "estimated_hours": module_data.estimated_hours,
            "order": module_index,
        })
        tasks = []
        for task_index, task_data in enumerate(module_data.tasks):
            task = gateway.task.create({
                "module_id": module.id,
                "title": task_data.title,
                "description": task_data.description,
                "type": task_data.type,
                "priority": task_data.priority,
                "estimated_hours": task_data.estimated_hours,
                "tech_stack": task_data.tech_stack,
                "file_path": task_data.file_path,
                "order": task_index,
            })
            tasks.append(task.to_dict())
        module_dict = module.to_dict()
        module_dict["tasks"] = tasks
        modules.append(module_dict)

    gateway.requirement.update({"id": requirement.id}, {"status": RequirementStatus.ANALYZED})
    return analysis, modules


async def analyze_requirement(
    context: TenantContext,
    requirement_id: str,
    client: CompletionClient,
) -> dict:
    """
    Raises:
        NotFoundError: Requirement not in this tenant
        QuotaExceededError: No aiRequests quota left
        UpstreamServiceError: AI call or storing its result failed (status reset to PENDING)
    """
    gateway = context.gateway
    requirement: Requirement = gateway.requirement.get_or_404(requirement_id, code="REQUIREMENT_NOT_FOUND")
    requirement_id = requirement.id

    reserve_quota_or_raise(context, QuotaResource.AI_REQUESTS)
    _set_requirement_status(context, requirement_id, RequirementStatus.ANALYZING)

    try:
        result = await client.analyze_requirement(requirement.content)
    except CompletionError as e:
        logger.error(
            "Requirement analysis failed",
            extra={
                "tenant_id": context.tenant_id,
                "requirement_id": requirement_id,
                "error_type": type(e).__name__,
            },
        )
        _set_requirement_status(context, requirement_id, RequirementStatus.PENDING)
        _release_ai_request(context)
        raise UpstreamServiceError("AI analysis failed, please retry later")

    try:
        analysis, modules = _store_analysis(gateway, requirement, result)
        context.db_session.commit()
    except SQLAlchemyError as e:
        context.db_session.rollback()
        logger.error(
            "Storing requirement analysis failed",
            extra={
                "tenant_id": context.tenant_id,
                "requirement_id": requirement_id,
                "error_type": type(e).__name__,
            },
        )
        _set_requirement_status(context, requirement_id, RequirementStatus.PENDING)
        _release_ai_request(context)
        raise UpstreamServiceError("AI analysis result could not be stored, please retry later")

    logger.info(
        "Requirement analyzed",
        extra={
            "tenant_id": context.tenant_id,
            "requirement_id": requirement_id,
            "module_count": len(modules),
        },
    )
    requirement = gateway.requirement.get_or_404(requirement_id)
    return {
        "requirement": requirement.to_dict(),
        "analysis": analysis.to_dict(),
        "modules": modules,
    }


async def generate_task_code(
    context: TenantContext,
    task_id: str,
    client: CompletionClient,
) -> dict:
    """
    Raises:
        NotFoundError: Task not in this tenant
        QuotaExceededError: No aiRequests quota left
        UpstreamServiceError: AI call or storing the code failed (status reset to TODO)
    """
    gateway = context.gateway
    task: Task = gateway.task.get_or_404(task_id, code="TASK_NOT_FOUND")
    task_id = task.id

    reserve_quota_or_raise(context, QuotaResource.AI_REQUESTS)
    _set_task_status(context, task_id, TaskStatus.IN_PROGRESS)

    description = f"{task.title}\n\n{task.description or ''}".strip()
    file_path = task.file_path
    try:
        code = await client.generate_code(description, task.tech_stack or [], file_path)
    except CompletionError as e:
        logger.error(
            "Code generation failed",
            extra={
                "tenant_id": context.tenant_id,
                "task_id": task_id,
                "error_type": type(e).__name__,
            },
        )
        _set_task_status(context, task_id, TaskStatus.TODO)
        _release_ai_request(context)
        raise UpstreamServiceError("Code generation failed, please retry later")

    try:
        gateway.task.update(
            {"id": task_id},
            {
                "generated_code": code,
                "code_language": detect_language(file_path),
                "status": TaskStatus.REVIEW,
            },
        )
        context.db_session.commit()
    except SQLAlchemyError as e:
        context.db_session.rollback()
        logger.error(
            "Storing generated code failed",
            extra={
                "tenant_id": context.tenant_id,
                "task_id": task_id,
                "error_type": type(e).__name__,
            },
        )
        _set_task_status(context, task_id, TaskStatus.TODO)
        _release_ai_request(context)
        raise UpstreamServiceError("Generated code could not be stored, please retry later")

    logger.info("Task code generated", extra={"tenant_id": context.tenant_id, "task_id": task_id})
    return gateway.task.get_or_404(task_id).to_dict()
