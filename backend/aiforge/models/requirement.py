"""
Requirement and RequirementAnalysis models.

A requirement belongs to a project; its analysis is produced by the AI
completion provider and stored once per run.
"""

from sqlalchemy import Column, String, Text, Enum, Float, JSON, ForeignKey

from aiforge.db_base import Base
from aiforge.models.base import TimestampMixin, TenantScopedMixin, generate_uuid
from aiforge.models.enums import Complexity, Priority, RequirementStatus, RequirementType


class Requirement(Base, TimestampMixin, TenantScopedMixin):
    __tablename__ = "requirements"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    project_id = Column(
        String(36),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    title = Column(String(500), nullable=False)

    content = Column(Text, nullable=False)

    type = Column(
        Enum(RequirementType, name="requirement_type"),
        nullable=False,
        default=RequirementType.FUNCTIONAL,
    )

    priority = Column(Enum(Priority, name="priority"), nullable=False, default=Priority.MEDIUM)

    status = Column(
        Enum(RequirementStatus, name="requirement_status"),
        nullable=False,
        default=RequirementStatus.PENDING,
    )

    created_by = Column(String(36), nullable=True)

    def __repr__(self) -> str:
        return f"<Requirement(id={self.id}, tenant_id={self.tenant_id}, status={self.status})>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenantId": self.tenant_id,
            "projectId": self.project_id,
            "title": self.title,
            "content": self.content,
            "type": self.type.value if self.type else None,
            "priority": self.priority.value if self.priority else None,
            "status": self.status.value if self.status else None,
            "createdBy": self.created_by,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


class RequirementAnalysis(Base, TimestampMixin, TenantScopedMixin):
    __tablename__ = "requirement_analyses"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    requirement_id = Column(
        String(36),
        ForeignKey("requirements.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    summary = Column(Text, nullable=False)

    key_features = Column(JSON, nullable=False, default=list)

    complexity = Column(
        Enum(Complexity, name="complexity"),
        nullable=False,
        default=Complexity.MEDIUM,
    )

    estimated_hours = Column(Float, nullable=False, default=0)

    suggestions = Column(Text, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "requirementId": self.requirement_id,
            "summary": self.summary,
            "keyFeatures": self.key_features or [],
            "complexity": self.complexity.value if self.complexity else None,
            "estimatedHours": self.estimated_hours,
            "suggestions": self.suggestions,
            "createdAt": self.created_at,
        }
