"""
Membership validation.

A user may act in a tenant only through an ACTIVE TenantMember row for
that exact (tenant, user) pair. The user's current_tenant_id pointer and
the token's tenantId claim are never sufficient on their own.
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from aiforge.models.tenant import Tenant
from aiforge.models.tenant_member import MemberStatus, TenantMember

logger = logging.getLogger(__name__)


class MembershipValidator:
    """Side-effect-free membership lookups."""

    def __init__(self, session: Session):
        self.session = session

    def get_active_membership(self, user_id: str, tenant_id: str) -> Optional[TenantMember]:
        if not user_id or not tenant_id:
            return None
        return (
            self.session.query(TenantMember)
            .filter(
                TenantMember.user_id == user_id,
                TenantMember.tenant_id == tenant_id,
                TenantMember.status == MemberStatus.ACTIVE,
            )
            .first()
        )

    def validate(self, user_id: str, tenant_id: str) -> bool:
        """True iff an ACTIVE membership exists for (user_id, tenant_id)."""
        return self.get_active_membership(user_id, tenant_id) is not None

    def list_active_memberships(self, user_id: str) -> List[TenantMember]:
        """Active memberships for a user, oldest first, with tenants loaded."""
        return (
            self.session.query(TenantMember)
            .join(Tenant, Tenant.id == TenantMember.tenant_id)
            .filter(
                TenantMember.user_id == user_id,
                TenantMember.status == MemberStatus.ACTIVE,
            )
            .order_by(TenantMember.joined_at.asc())
            .all()
        )
