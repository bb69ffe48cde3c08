"""
Default quota limits per plan tier.

Applied when a tenant is created. Limits live on the tenant's quota row
afterwards, so changing this table does not affect existing tenants.
"""

from dataclasses import dataclass

GIB = 1024 * 1024 * 1024


@dataclass(frozen=True)
class QuotaLimits:
    max_projects: int
    max_users: int
    max_requirements: int
    max_ai_requests: int
    max_storage: int

    def as_columns(self) -> dict:
        return {
            "max_projects": self.max_projects,
            "max_users": self.max_users,
            "max_requirements": self.max_requirements,
            "max_ai_requests": self.max_ai_requests,
            "max_storage": self.max_storage,
        }


PLAN_QUOTAS: dict[str, QuotaLimits] = {
    "FREE": QuotaLimits(
        max_projects=10,
        max_users=5,
        max_requirements=100,
        max_ai_requests=1000,
        max_storage=1 * GIB,
    ),
    "BASIC": QuotaLimits(
        max_projects=50,
        max_users=20,
        max_requirements=1000,
        max_ai_requests=10000,
        max_storage=10 * GIB,
    ),
    "PROFESSIONAL": QuotaLimits(
        max_projects=200,
        max_users=100,
        max_requirements=10000,
        max_ai_requests=100000,
        max_storage=100 * GIB,
    ),
    "ENTERPRISE": QuotaLimits(
        max_projects=1000,
        max_users=1000,
        max_requirements=100000,
        max_ai_requests=1000000,
        max_storage=1000 * GIB,
    ),
}


def get_quota_limits(plan) -> QuotaLimits:
    """Get limits for a plan tier, falling back to FREE for unknown tiers."""
    key = getattr(plan, "value", plan)
    return PLAN_QUOTAS.get(str(key).upper(), PLAN_QUOTAS["FREE"])
