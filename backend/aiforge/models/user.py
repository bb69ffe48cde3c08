"""User identity model."""

from typing import TYPE_CHECKING

from sqlalchemy import Column, String, Boolean
from sqlalchemy.orm import relationship

from aiforge.db_base import Base
from aiforge.models.base import TimestampMixin, generate_uuid

if TYPE_CHECKING:
    from aiforge.models.tenant_member import TenantMember


class User(Base, TimestampMixin):
    """
    A principal identified by a unique email.

    current_tenant_id points at the tenant the user last signed in to or
    switched to. It is a preference only: access is always decided by an
    ACTIVE membership row, never by this pointer.
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    email = Column(String(255), nullable=False, unique=True, index=True)

    name = Column(String(255), nullable=True)

    avatar = Column(String(1024), nullable=True)

    password_hash = Column(
        String(255),
        nullable=True,
        comment="pbkdf2 hash; null for accounts without a local password"
    )

    current_tenant_id = Column(String(36), nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)

    memberships = relationship(
        "TenantMember",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "avatar": self.avatar,
            "currentTenantId": self.current_tenant_id,
        }
