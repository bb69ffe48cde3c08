"""Module model: a unit of work under a project, optionally nested."""

from sqlalchemy import Column, String, Text, Enum, Float, Integer, Boolean, ForeignKey

from aiforge.db_base import Base
from aiforge.models.base import TimestampMixin, TenantScopedMixin, generate_uuid
from aiforge.models.enums import ModuleStatus, ModuleType, Priority


class Module(Base, TimestampMixin, TenantScopedMixin):
    __tablename__ = "modules"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    project_id = Column(
        String(36),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    requirement_id = Column(
        String(36),
        ForeignKey("requirements.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    parent_id = Column(
        String(36),
        ForeignKey("modules.id", ondelete="CASCADE"),
        nullable=True,
    )

    name = Column(String(255), nullable=False)

    description = Column(Text, nullable=True)

    type = Column(Enum(ModuleType, name="module_type"), nullable=False, default=ModuleType.FEATURE)

    priority = Column(Enum(Priority, name="priority"), nullable=False, default=Priority.MEDIUM)

    status = Column(Enum(ModuleStatus, name="module_status"), nullable=False, default=ModuleStatus.TODO)

    is_backend_required = Column(Boolean, nullable=False, default=False)
    is_frontend_required = Column(Boolean, nullable=False, default=False)

    estimated_hours = Column(Float, nullable=True)
    actual_hours = Column(Float, nullable=True)

    order = Column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<Module(id={self.id}, tenant_id={self.tenant_id}, name={self.name})>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenantId": self.tenant_id,
            "projectId": self.project_id,
            "requirementId": self.requirement_id,
            "parentId": self.parent_id,
            "name": self.name,
            "description": self.description,
            "type": self.type.value if self.type else None,
            "priority": self.priority.value if self.priority else None,
            "status": self.status.value if self.status else None,
            "isBackendRequired": self.is_backend_required,
            "isFrontendRequired": self.is_frontend_required,
            "estimatedHours": self.estimated_hours,
            "actualHours": self.actual_hours,
            "order": self.order,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
