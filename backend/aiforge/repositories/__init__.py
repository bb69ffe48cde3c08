"""Tenant-scoped repositories."""

from aiforge.repositories.base_repo import TenantScopedRepository
from aiforge.repositories.tenant_gateway import (
    ModuleRepository,
    ProjectRepository,
    RequirementAnalysisRepository,
    RequirementRepository,
    TaskRepository,
    TenantDataGateway,
)

__all__ = [
    "TenantScopedRepository",
    "ModuleRepository",
    "ProjectRepository",
    "RequirementAnalysisRepository",
    "RequirementRepository",
    "TaskRepository",
    "TenantDataGateway",
]
