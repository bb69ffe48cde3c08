"""
Per-tenant quota enforcement.

Usage counters are only ever changed with in-database arithmetic, never by
read-modify-write in application memory:

- update_usage(): clamped increment, `used` never drops below zero
- try_reserve(): conditional increment that only succeeds while the result
  stays within the limit, so concurrent creates cannot over-admit

check() is a pure read and fails closed: a tenant without a quota row is
treated as having a limit of zero.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Dict, Union

from sqlalchemy import case, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from aiforge.models.tenant_quota import TenantQuota

logger = logging.getLogger(__name__)


class QuotaResource(str, enum.Enum):
    PROJECTS = "projects"
    USERS = "users"
    REQUIREMENTS = "requirements"
    AI_REQUESTS = "aiRequests"
    STORAGE = "storage"


# resource -> (used column, max column)
_COLUMNS = {
    QuotaResource.PROJECTS: ("used_projects", "max_projects"),
    QuotaResource.USERS: ("used_users", "max_users"),
    QuotaResource.REQUIREMENTS: ("used_requirements", "max_requirements"),
    QuotaResource.AI_REQUESTS: ("used_ai_requests", "max_ai_requests"),
    QuotaResource.STORAGE: ("used_storage", "max_storage"),
}


def parse_resource(resource: Union[QuotaResource, str]) -> QuotaResource:
    """
    Raises:
        ValueError: If the resource is not one of the five quota resources
    """
    if isinstance(resource, QuotaResource):
        return resource
    return QuotaResource(resource)


@dataclass(frozen=True)
class QuotaCheckResult:
    allowed: bool
    current: int
    limit: int

    def to_dict(self) -> dict:
        return {"allowed": self.allowed, "current": self.current, "limit": self.limit}


class QuotaGuard:
    """
    Checks and updates quota counters for a tenant.

    Writes are flushed but not committed; the caller owns the transaction.
    """

    def __init__(self, session: Session):
        self.session = session

    def _columns(self, resource: Union[QuotaResource, str]):
        used_name, max_name = _COLUMNS[parse_resource(resource)]
        return getattr(TenantQuota, used_name), getattr(TenantQuota, max_name)

    def check(self, tenant_id: str, resource: Union[QuotaResource, str]) -> QuotaCheckResult:
        """Read-only: allowed = current < limit. Missing row => (False, 0, 0)."""
        used_col, max_col = self._columns(resource)
        row = (
            self.session.query(used_col, max_col)
            .filter(TenantQuota.tenant_id == tenant_id)
            .first()
        )
        if row is None:
            logger.warning(
                "Quota row missing, denying",
                extra={"tenant_id": tenant_id, "resource": parse_resource(resource).value},
            )
            return QuotaCheckResult(allowed=False, current=0, limit=0)

        current, limit = int(row[0] or 0), int(row[1] or 0)
        return QuotaCheckResult(allowed=current < limit, current=current, limit=limit)

    def update_usage(self, tenant_id: str, resource: Union[QuotaResource, str], delta: int) -> bool:
        """
        Apply a signed increment to a usage counter, clamped at zero.

        Returns:
            False if the tenant has no quota row
        """
        used_col, _ = self._columns(resource)
        new_value = used_col + delta
        stmt = (
            update(TenantQuota)
            .where(TenantQuota.tenant_id == tenant_id)
            .values({used_col: case((new_value < 0, 0), else_=new_value)})
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.session.execute(stmt)
            self.session.flush()
        except SQLAlchemyError as e:
            logger.error(
                "Failed to update quota usage",
                extra={"tenant_id": tenant_id, "error": str(e)},
            )
            raise
        self._expire_cached_quota(tenant_id)
        return result.rowcount > 0

    def try_reserve(self, tenant_id: str, resource: Union[QuotaResource, str], amount: int = 1) -> bool:
        """
        Atomically take `amount` units if the result stays within the limit.

        Returns:
            True if reserved, False if the limit would be exceeded or no row exists
        """
        if amount <= 0:
            raise ValueError("amount must be positive")
        used_col, max_col = self._columns(resource)
        stmt = (
            update(TenantQuota)
            .where(TenantQuota.tenant_id == tenant_id, used_col + amount <= max_col)
            .values({used_col: used_col + amount})
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        self.session.flush()
        self._expire_cached_quota(tenant_id)
        reserved = result.rowcount > 0
        if not reserved:
            logger.warning(
                "Quota reservation refused",
                extra={"tenant_id": tenant_id, "resource": parse_resource(resource).value},
            )
        return reserved

    def release(self, tenant_id: str, resource: Union[QuotaResource, str], amount: int = 1) -> bool:
        """Give back units taken by try_reserve (or counted by create)."""
        return self.update_usage(tenant_id, resource, -abs(amount))

    def get_usage(self, tenant_id: str) -> Dict[str, dict]:
        """All five counters as {resource: {used, limit}}; empty if no row."""
        quota = (
            self.session.query(TenantQuota)
            .filter(TenantQuota.tenant_id == tenant_id)
            .first()
        )
        if quota is None:
            return {}
        usage = {}
        for resource, (used_name, max_name) in _COLUMNS.items():
            usage[resource.value] = {
                "used": int(getattr(quota, used_name) or 0),
                "limit": int(getattr(quota, max_name) or 0),
            }
        return usage

    def _expire_cached_quota(self, tenant_id: str) -> None:
        # Bulk UPDATE bypasses the identity map
        for obj in list(self.session.identity_map.values()):
            if isinstance(obj, TenantQuota) and obj.tenant_id == tenant_id:
                self.session.expire(obj)
