"""
Database models for AI Forge.

Importing this package registers every table on aiforge.db_base.Base.
"""

from aiforge.models.base import TimestampMixin, TenantScopedMixin, generate_uuid, utcnow
from aiforge.models.enums import (
    Complexity,
    ModuleStatus,
    ModuleType,
    Priority,
    ProjectStatus,
    RequirementStatus,
    RequirementType,
    TaskStatus,
    TaskType,
)
from aiforge.models.user import User
from aiforge.models.tenant import Tenant, TenantPlan, TenantStatus
from aiforge.models.tenant_member import MemberStatus, TenantMember, TenantRole
from aiforge.models.tenant_quota import TenantQuota
from aiforge.models.project import Project
from aiforge.models.requirement import Requirement, RequirementAnalysis
from aiforge.models.module import Module
from aiforge.models.task import Task

__all__ = [
    "TimestampMixin",
    "TenantScopedMixin",
    "generate_uuid",
    "utcnow",
    "Complexity",
    "ModuleStatus",
    "ModuleType",
    "Priority",
    "ProjectStatus",
    "RequirementStatus",
    "RequirementType",
    "TaskStatus",
    "TaskType",
    "User",
    "Tenant",
    "TenantPlan",
    "TenantStatus",
    "MemberStatus",
    "TenantMember",
    "TenantRole",
    "TenantQuota",
    "Project",
    "Requirement",
    "RequirementAnalysis",
    "Module",
    "Task",
]
