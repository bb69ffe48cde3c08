"""
Tenant-scoped data gateway.

The single chokepoint through which handlers read and write projects,
requirements, analyses, modules and tasks. A gateway is built per request
from the resolved tenant id and is never shared across requests.
"""

from typing import Optional

from sqlalchemy.orm import Session

from aiforge.models.module import Module
from aiforge.models.project import Project
from aiforge.models.requirement import Requirement, RequirementAnalysis
from aiforge.models.task import Task
from aiforge.repositories.base_repo import TenantScopedRepository


class ProjectRepository(TenantScopedRepository[Project]):
    def _get_model_class(self):
        return Project


class RequirementRepository(TenantScopedRepository[Requirement]):
    parent_refs = {"project_id": (Project, "Project")}

    def _get_model_class(self):
        return Requirement


class RequirementAnalysisRepository(TenantScopedRepository[RequirementAnalysis]):
    parent_refs = {"requirement_id": (Requirement, "Requirement")}

    def _get_model_class(self):
        return RequirementAnalysis

    def latest_for(self, requirement_id: str) -> Optional[RequirementAnalysis]:
        analyses = self.find_many(
            {"requirement_id": requirement_id}, order_by="-created_at", limit=1
        )
        return analyses[0] if analyses else None


class ModuleRepository(TenantScopedRepository[Module]):
    parent_refs = {
        "project_id": (Project, "Project"),
        "requirement_id": (Requirement, "Requirement"),
        "parent_id": (Module, "Module"),
    }

    def _get_model_class(self):
        return Module


class TaskRepository(TenantScopedRepository[Task]):
    parent_refs = {"module_id": (Module, "Module")}

    def _get_model_class(self):
        return Task


class TenantDataGateway:
    """
    Per-request access to every tenant-scoped entity.

    Usage:
        gateway = TenantDataGateway(session, tenant_id)
        projects = gateway.project.find_many(order_by="-created_at")
    """

    def __init__(self, db_session: Session, tenant_id: str):
        if not tenant_id:
            raise ValueError("tenant_id is required and cannot be empty")
        self.db_session = db_session
        self.tenant_id = tenant_id
        self.project = ProjectRepository(db_session, tenant_id)
        self.requirement = RequirementRepository(db_session, tenant_id)
        self.requirement_analysis = RequirementAnalysisRepository(db_session, tenant_id)
        self.module = ModuleRepository(db_session, tenant_id)
        self.task = TaskRepository(db_session, tenant_id)

    def __repr__(self) -> str:
        return f"<TenantDataGateway(tenant_id={self.tenant_id})>"
