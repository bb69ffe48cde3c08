"""
Demo data seed.

Creates the "ai-forge-studio" tenant with an ADMIN user, a quota row and
one sample project, requirement and module. Safe to run repeatedly: an
existing tenant or user is reused, and the sample project is only created
for a tenant that has none.

Usage:
    python -m scripts.seed_demo --email admin@example.com --password secret

Environment variables:
    DATABASE_URL: PostgreSQL connection string
    SEED_ADMIN_PASSWORD: Used when --password is not given
"""

import os
import sys
import logging
from pathlib import Path

# Add backend directory to path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from aiforge.auth.passwords import hash_password
from aiforge.config.quota_defaults import get_quota_limits
from aiforge.constants.permissions import Role
from aiforge.database.session import session_scope
from aiforge.models import (
    MemberStatus,
    ModuleType,
    Priority,
    Tenant,
    TenantMember,
    TenantPlan,
    TenantQuota,
    TenantStatus,
    User,
)
from aiforge.repositories.tenant_gateway import TenantDataGateway
from aiforge.services.quota_guard import QuotaGuard, QuotaResource

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DEMO_TENANT_SLUG = "ai-forge-studio"


def _get_or_create_user(session, email: str, password: str) -> User:
    user = session.query(User).filter(User.email == email).first()
    if user is not None:
        logger.info(f"User exists: {email}")
        return user
    user = User(email=email, name="Demo Admin", password_hash=hash_password(password))
    session.add(user)
    session.flush()
    logger.info(f"Created user: {email}")
    return user


def _get_or_create_tenant(session, admin: User) -> Tenant:
    tenant = session.query(Tenant).filter(Tenant.slug == DEMO_TENANT_SLUG).first()
    if tenant is not None:
        logger.info(f"Tenant exists: {DEMO_TENANT_SLUG}")
        return tenant
    tenant = Tenant(
        name="AI Forge Studio",
        slug=DEMO_TENANT_SLUG,
        admin_id=admin.id,
        plan=TenantPlan.BASIC,
        status=TenantStatus.ACTIVE,
        settings={"allowUserRegistration": True, "defaultUserRole": Role.MEMBER.value},
    )
    session.add(tenant)
    session.flush()
    session.add(TenantQuota(tenant_id=tenant.id, **get_quota_limits(tenant.plan).as_columns()))
    session.flush()
    logger.info(f"Created tenant: {DEMO_TENANT_SLUG}")
    return tenant


def _ensure_admin_membership(session, user: User, tenant: Tenant) -> None:
    membership = (
        session.query(TenantMember)
        .filter(TenantMember.tenant_id == tenant.id, TenantMember.user_id == user.id)
        .first()
    )
    if membership is None:
        session.add(TenantMember(
            tenant_id=tenant.id,
            user_id=user.id,
            role=Role.ADMIN,
            status=MemberStatus.ACTIVE,
        ))
        QuotaGuard(session).update_usage(tenant.id, QuotaResource.USERS, 1)
    if user.current_tenant_id is None:
        user.current_tenant_id = tenant.id
    session.flush()


def _seed_sample_project(session, user: User, tenant: Tenant) -> None:
    gateway = TenantDataGateway(session, tenant.id)
    if gateway.project.count() > 0:
        logger.info("Sample data exists, skipping")
        return

    project = gateway.project.create({
        "name": "Sample project",
        "description": "A sample project that demonstrates the platform",
        "owner_id": user.id,
    })
    requirement = gateway.requirement.create({
        "project_id": project.id,
        "title": "User management",
        "content": (
            "Implement user management: registration, login and profile editing. "
            "Support email sign-up, password verification and token authentication."
        ),
        "priority": Priority.HIGH,
        "created_by": user.id,
    })
    gateway.module.create({
        "project_id": project.id,
        "requirement_id": requirement.id,
        "name": "Authentication",
        "description": "Registration, login and session handling",
        "type": ModuleType.FEATURE,
        "priority": Priority.HIGH,
        "estimated_hours": 40,
    })

    guard = QuotaGuard(session)
    guard.update_usage(tenant.id, QuotaResource.PROJECTS, 1)
    guard.update_usage(tenant.id, QuotaResource.REQUIREMENTS, 1)
    logger.info("Created sample project, requirement and module")


def seed_demo(email: str, password: str, factory=None) -> None:
    """Create or reuse the demo tenant and its admin."""
    with session_scope(factory) as session:
        user = _get_or_create_user(session, email.strip().lower(), password)
        tenant = _get_or_create_tenant(session, user)
        _ensure_admin_membership(session, user, tenant)
        _seed_sample_project(session, user, tenant)


def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="Seed demo tenant data")
    parser.add_argument("--email", type=str, default="admin@aiforge.dev", help="Admin email")
    parser.add_argument(
        "--password",
        type=str,
        default=os.getenv("SEED_ADMIN_PASSWORD"),
        help="Admin password (default: SEED_ADMIN_PASSWORD env var)",
    )
    args = parser.parse_args()

    if not args.password:
        parser.error("--password or SEED_ADMIN_PASSWORD is required")

    logger.info("Seeding demo data...")
    seed_demo(args.email, args.password)
    logger.info("Demo seed complete!")


if __name__ == "__main__":
    main()
