"""
Tenant model.

A tenant is the isolation boundary: every project, requirement, module and
task carries its tenant_id. A tenant is created together with its first
(ADMIN) membership and its quota row.
"""

import enum
from typing import TYPE_CHECKING

from sqlalchemy import Column, String, Enum, JSON
from sqlalchemy.orm import relationship

from aiforge.db_base import Base
from aiforge.models.base import TimestampMixin, generate_uuid

if TYPE_CHECKING:
    from aiforge.models.tenant_member import TenantMember
    from aiforge.models.tenant_quota import TenantQuota


class TenantStatus(str, enum.Enum):
    """Tenant lifecycle status."""
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"  # Temporarily disabled (e.g., billing issue)
    INACTIVE = "INACTIVE"


class TenantPlan(str, enum.Enum):
    FREE = "FREE"
    BASIC = "BASIC"
    PROFESSIONAL = "PROFESSIONAL"
    ENTERPRISE = "ENTERPRISE"


class Tenant(Base, TimestampMixin):
    """
    Workspace boundary owning all business data.

    Only ACTIVE tenants are ever resolved for a request; SUSPENDED and
    INACTIVE tenants look exactly like missing ones to the resolver.
    """

    __tablename__ = "tenants"

    id = Column(
        String(36),
        primary_key=True,
        default=generate_uuid,
        comment="Primary key - this IS the tenant_id used across all models"
    )

    name = Column(String(255), nullable=False)

    slug = Column(
        String(100),
        nullable=False,
        unique=True,
        index=True,
        comment="URL-safe identifier used for subdomain and path resolution"
    )

    domain = Column(String(255), nullable=True, unique=True)

    settings = Column(JSON, nullable=True)

    plan = Column(
        Enum(TenantPlan, name="tenant_plan"),
        nullable=False,
        default=TenantPlan.FREE,
    )

    status = Column(
        Enum(TenantStatus, name="tenant_status"),
        nullable=False,
        default=TenantStatus.ACTIVE,
        index=True,
    )

    admin_id = Column(
        String(36),
        nullable=False,
        comment="User who created the tenant"
    )

    members = relationship(
        "TenantMember",
        back_populates="tenant",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    quota = relationship(
        "TenantQuota",
        back_populates="tenant",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, slug={self.slug}, status={self.status})>"

    @property
    def is_active(self) -> bool:
        return self.status == TenantStatus.ACTIVE

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "domain": self.domain,
            "plan": self.plan.value if self.plan else None,
            "status": self.status.value if self.status else None,
            "settings": self.settings,
        }
