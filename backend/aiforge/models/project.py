"""Project model (root of the tenant-scoped containment hierarchy)."""

from sqlalchemy import Column, String, Text, Enum, ForeignKey

from aiforge.db_base import Base
from aiforge.models.base import TimestampMixin, TenantScopedMixin, generate_uuid
from aiforge.models.enums import ProjectStatus


class Project(Base, TimestampMixin, TenantScopedMixin):
    __tablename__ = "projects"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    name = Column(String(255), nullable=False)

    description = Column(Text, nullable=True)

    status = Column(
        Enum(ProjectStatus, name="project_status"),
        nullable=False,
        default=ProjectStatus.PLANNING,
    )

    owner_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, tenant_id={self.tenant_id}, name={self.name})>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenantId": self.tenant_id,
            "name": self.name,
            "description": self.description,
            "status": self.status.value if self.status else None,
            "ownerId": self.owner_id,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
