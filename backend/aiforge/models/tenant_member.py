"""
TenantMember model linking users to tenants with a role.

SECURITY:
- CASCADE delete on user_id and tenant_id
- Unique constraint on (tenant_id, user_id): one membership per pair
- Only ACTIVE memberships grant access
"""

import enum
from typing import TYPE_CHECKING

from sqlalchemy import Column, String, DateTime, Enum, Index, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from aiforge.constants.permissions import Role
from aiforge.db_base import Base
from aiforge.models.base import TimestampMixin, generate_uuid, utcnow

if TYPE_CHECKING:
    from aiforge.models.user import User
    from aiforge.models.tenant import Tenant

# Membership roles are the permission roles
TenantRole = Role


class MemberStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INVITED = "INVITED"
    SUSPENDED = "SUSPENDED"


class TenantMember(Base, TimestampMixin):
    """Membership of one user in one tenant."""

    __tablename__ = "tenant_members"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    tenant_id = Column(
        String(36),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    role = Column(
        Enum(Role, name="tenant_role"),
        nullable=False,
        default=Role.MEMBER,
    )

    status = Column(
        Enum(MemberStatus, name="member_status"),
        nullable=False,
        default=MemberStatus.ACTIVE,
        index=True,
    )

    joined_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    user = relationship("User", back_populates="memberships")

    tenant = relationship("Tenant", back_populates="members")

    __table_args__ = (
        UniqueConstraint("tenant_id", "user_id", name="uq_tenant_member"),
        Index("ix_tenant_members_user_status", "user_id", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<TenantMember(tenant_id={self.tenant_id}, user_id={self.user_id}, "
            f"role={self.role}, status={self.status})>"
        )

    @property
    def is_active(self) -> bool:
        return self.status == MemberStatus.ACTIVE
