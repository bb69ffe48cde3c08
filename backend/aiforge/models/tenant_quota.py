"""
Per-tenant quota counters.

One row per tenant holding (used, max) pairs for projects, users,
requirements, AI requests and storage bytes. Counters are only changed with
in-database increments (see aiforge.services.quota_guard).
"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Column, String, Integer, BigInteger, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from aiforge.db_base import Base
from aiforge.models.base import TimestampMixin, generate_uuid

if TYPE_CHECKING:
    from aiforge.models.tenant import Tenant


class TenantQuota(Base, TimestampMixin):
    __tablename__ = "tenant_quotas"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    tenant_id = Column(
        String(36),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )

    max_projects = Column(Integer, nullable=False, default=10)
    used_projects = Column(Integer, nullable=False, default=0)

    max_users = Column(Integer, nullable=False, default=5)
    used_users = Column(Integer, nullable=False, default=0)

    max_requirements = Column(Integer, nullable=False, default=100)
    used_requirements = Column(Integer, nullable=False, default=0)

    max_ai_requests = Column(Integer, nullable=False, default=1000)
    used_ai_requests = Column(Integer, nullable=False, default=0)

    max_storage = Column(BigInteger, nullable=False, default=1073741824)
    used_storage = Column(BigInteger, nullable=False, default=0)

    reset_at = Column(DateTime(timezone=True), nullable=True)

    tenant = relationship("Tenant", back_populates="quota")

    def __repr__(self) -> str:
        return f"<TenantQuota(tenant_id={self.tenant_id})>"
