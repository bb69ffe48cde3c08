"""Task model: the leaf of the containment hierarchy, may carry generated code."""

from sqlalchemy import Column, String, Text, Enum, Float, Integer, JSON, ForeignKey

from aiforge.db_base import Base
from aiforge.models.base import TimestampMixin, TenantScopedMixin, generate_uuid
from aiforge.models.enums import Priority, TaskStatus, TaskType


class Task(Base, TimestampMixin, TenantScopedMixin):
    __tablename__ = "tasks"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    module_id = Column(
        String(36),
        ForeignKey("modules.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    title = Column(String(500), nullable=False)

    description = Column(Text, nullable=True)

    type = Column(Enum(TaskType, name="task_type"), nullable=False, default=TaskType.DEVELOPMENT)

    priority = Column(Enum(Priority, name="priority"), nullable=False, default=Priority.MEDIUM)

    status = Column(Enum(TaskStatus, name="task_status"), nullable=False, default=TaskStatus.TODO)

    estimated_hours = Column(Float, nullable=True)
    actual_hours = Column(Float, nullable=True)

    tech_stack = Column(JSON, nullable=False, default=list)

    generated_code = Column(Text, nullable=True)

    code_language = Column(String(50), nullable=True)

    file_path = Column(String(1024), nullable=True)

    assignee_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    order = Column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<Task(id={self.id}, tenant_id={self.tenant_id}, status={self.status})>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenantId": self.tenant_id,
            "moduleId": self.module_id,
            "title": self.title,
            "description": self.description,
            "type": self.type.value if self.type else None,
            "priority": self.priority.value if self.priority else None,
            "status": self.status.value if self.status else None,
            "estimatedHours": self.estimated_hours,
            "actualHours": self.actual_hours,
            "techStack": self.tech_stack or [],
            "generatedCode": self.generated_code,
            "codeLanguage": self.code_language,
            "filePath": self.file_path,
            "assigneeId": self.assignee_id,
            "order": self.order,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
