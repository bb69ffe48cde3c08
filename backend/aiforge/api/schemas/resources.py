"""Create/update bodies for tenant-scoped resources."""

from typing import List, Optional

from pydantic import Field, field_validator

from aiforge.api.schemas.base import RequestModel, reject_null
from aiforge.models.enums import (
    ModuleStatus,
    ModuleType,
    Priority,
    ProjectStatus,
    RequirementStatus,
    RequirementType,
    TaskStatus,
    TaskType,
)


class ProjectCreate(RequestModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    status: ProjectStatus = ProjectStatus.PLANNING


class ProjectUpdate(RequestModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[ProjectStatus] = None

    @field_validator("name", "status", mode="before")
    @classmethod
    def not_null(cls, value):
        return reject_null(value)


class RequirementCreate(RequestModel):
    project_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=500)
    content: str = Field(..., min_length=1)
    type: RequirementType = RequirementType.FUNCTIONAL
    priority: Priority = Priority.MEDIUM


class RequirementUpdate(RequestModel):
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    content: Optional[str] = Field(None, min_length=1)
    type: Optional[RequirementType] = None
    priority: Optional[Priority] = None
    status: Optional[RequirementStatus] = None

    @field_validator("title", "content", "type", "priority", "status", mode="before")
    @classmethod
    def not_null(cls, value):
        return reject_null(value)


class ModuleCreate(RequestModel):
    project_id: str = Field(..., min_length=1)
    requirement_id: Optional[str] = None
    parent_id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    type: ModuleType = ModuleType.FEATURE
    priority: Priority = Priority.MEDIUM
    is_backend_required: bool = False
    is_frontend_required: bool = False
    estimated_hours: Optional[float] = Field(None, ge=0)
    order: int = 0


class ModuleUpdate(RequestModel):
    parent_id: Optional[str] = None
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    type: Optional[ModuleType] = None
    priority: Optional[Priority] = None
    status: Optional[ModuleStatus] = None
    is_backend_required: Optional[bool] = None
    is_frontend_required: Optional[bool] = None
    estimated_hours: Optional[float] = Field(None, ge=0)
    actual_hours: Optional[float] = Field(None, ge=0)
    order: Optional[int] = None

    @field_validator(
        "name", "type", "priority", "status", "is_backend_required", "is_frontend_required", "order",
        mode="before",
    )
    @classmethod
    def not_null(cls, value):
        return reject_null(value)


class TaskCreate(RequestModel):
    module_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    type: TaskType = TaskType.DEVELOPMENT
    priority: Priority = Priority.MEDIUM
    estimated_hours: Optional[float] = Field(None, ge=0)
    tech_stack: List[str] = Field(default_factory=list)
    file_path: Optional[str] = Field(None, max_length=1024)
    assignee_id: Optional[str] = None
    order: int = 0


class TaskUpdate(RequestModel):
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    type: Optional[TaskType] = None
    priority: Optional[Priority] = None
    status: Optional[TaskStatus] = None
    estimated_hours: Optional[float] = Field(None, ge=0)
    actual_hours: Optional[float] = Field(None, ge=0)
    tech_stack: Optional[List[str]] = None
    file_path: Optional[str] = Field(None, max_length=1024)
    assignee_id: Optional[str] = None
    order: Optional[int] = None

    @field_validator("title", "type", "priority", "status", "tech_stack", "order", mode="before")
    @classmethod
    def not_null(cls, value):
        return reject_null(value)
