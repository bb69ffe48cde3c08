"""
Column mixins shared by the AI Forge models.

TimestampMixin stamps rows on the Python side as well as in the database,
so ordering by created_at stays stable for rows written within the same
second (SQLite's CURRENT_TIMESTAMP has one-second resolution).
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, String, func
from sqlalchemy.orm import declared_attr


def generate_uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin:
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
    )


class TenantScopedMixin:
    """
    Adds the owning tenant_id to a table.

    SECURITY: the value comes from the resolved request tenant only. Rows of
    a scoped model are read and written through
    aiforge.repositories.TenantScopedRepository, which overwrites any
    tenant_id a client payload carries.
    """

    @declared_attr
    def tenant_id(cls):
        return Column(
            String(36),
            ForeignKey("tenants.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )
