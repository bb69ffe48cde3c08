"""
Root test configuration and fixtures.

Every test gets a fresh in-memory SQLite database with foreign keys (and
ON DELETE CASCADE) enforced. Route tests drive the real application through
FastAPI's TestClient with the database session and the AI completion
client replaced by fixtures.
"""

import os
import uuid
from typing import Generator, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment
os.environ.setdefault("ENV", "test")

TEST_JWT_SECRET = "test-secret-key-for-signing-tokens-0123456789"


@pytest.fixture(autouse=True)
def jwt_secret(monkeypatch):
    """Signing secret for every test; tests of the unconfigured path delete it."""
    monkeypatch.setenv("JWT_SECRET", TEST_JWT_SECRET)
    monkeypatch.delenv("JWT_ACCESS_TTL_SECONDS", raising=False)
    monkeypatch.delenv("TENANT_HEADER_NAME", raising=False)
    return TEST_JWT_SECRET


@pytest.fixture
def db_engine():
    from aiforge.database.session import enable_sqlite_foreign_keys
    from aiforge.db_base import Base
    import aiforge.models  # noqa: F401

    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(db_engine) -> Generator[Session, None, None]:
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    yield session
    session.close()


# =============================================================================
# Data factories
# =============================================================================


@pytest.fixture
def make_tenant(db_session):
    """
    Factory for tenants with a quota row.

    Usage:
        tenant = make_tenant("acme", max_projects=1)
    """
    from aiforge.config.quota_defaults import get_quota_limits
    from aiforge.models import Tenant, TenantPlan, TenantQuota, TenantStatus

    def _make(
        slug: Optional[str] = None,
        status: TenantStatus = TenantStatus.ACTIVE,
        with_quota: bool = True,
        **quota_overrides,
    ) -> Tenant:
        slug = slug or f"tenant-{uuid.uuid4().hex[:8]}"
        tenant = Tenant(
            name=slug.title(),
            slug=slug,
            plan=TenantPlan.FREE,
            status=status,
            admin_id=str(uuid.uuid4()),
        )
        db_session.add(tenant)
        db_session.flush()
        if with_quota:
            columns = get_quota_limits(TenantPlan.FREE).as_columns()
            columns.update(quota_overrides)
            db_session.add(TenantQuota(tenant_id=tenant.id, **columns))
        db_session.commit()
        return tenant

    return _make


@pytest.fixture
def make_user(db_session):
    from aiforge.auth.passwords import hash_password
    from aiforge.models import User

    def _make(email: Optional[str] = None, password: Optional[str] = None, is_active: bool = True) -> User:
        user = User(
            email=email or f"user-{uuid.uuid4().hex[:8]}@example.com",
            name="Test User",
            password_hash=hash_password(password, iterations=1000) if password else None,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture
def add_member(db_session):
    from aiforge.constants.permissions import Role
    from aiforge.models import MemberStatus, TenantMember

    def _add(user, tenant, role: Role = Role.MEMBER, status: MemberStatus = MemberStatus.ACTIVE) -> TenantMember:
        membership = TenantMember(tenant_id=tenant.id, user_id=user.id, role=role, status=status)
        db_session.add(membership)
        db_session.commit()
        return membership

    return _add


@pytest.fixture
def member_of(make_user, add_member):
    """A fresh user holding an active membership with the given role."""
    from aiforge.constants.permissions import Role

    def _make(tenant, role: Role = Role.MEMBER):
        user = make_user()
        add_member(user, tenant, role)
        return user

    return _make


@pytest.fixture
def make_tenant_project(db_session):
    """Create a project directly through a gateway for the given tenant."""
    from aiforge.repositories.tenant_gateway import TenantDataGateway

    def _make(tenant, name: str = "Project", owner=None):
        project = TenantDataGateway(db_session, tenant.id).project.create({
            "name": name,
            "owner_id": owner.id if owner is not None else None,
        })
        db_session.commit()
        return project

    return _make


@pytest.fixture
def issue_token():
    from aiforge.auth.jwt import AccessTokenClaims
    from aiforge.auth.token_service import get_token_service

    def _issue(user, tenant=None, role: Optional[str] = None, ttl: Optional[int] = None) -> str:
        claims = AccessTokenClaims(
            user_id=user.id,
            email=user.email,
            tenant_id=tenant.id if tenant is not None else None,
            role=getattr(role, "value", role),
        )
        return get_token_service().issue_access_token(claims, ttl=ttl)

    return _issue


@pytest.fixture
def auth_headers(issue_token):
    """Bearer token plus x-tenant-id header for a user in a tenant."""

    def _headers(user, tenant, role=None) -> dict:
        return {
            "Authorization": f"Bearer {issue_token(user, tenant, role)}",
            "x-tenant-id": tenant.id,
        }

    return _headers


# =============================================================================
# AI completion fake
# =============================================================================


class FakeCompletionClient:
    """Stands in for CompletionClient; records calls and can be told to fail."""

    def __init__(self):
        from aiforge.integrations.openai.models import AnalysisResult

        self.analysis = AnalysisResult.from_dict({
            "summary": "Login page with password reset",
            "keyFeatures": ["login", "password reset"],
            "complexity": "MEDIUM",
            "estimatedHours": 16,
            "suggestions": "Rate-limit login attempts",
            "modules": [
                {
                    "name": "Auth UI",
                    "type": "COMPONENT",
                    "priority": "HIGH",
                    "estimatedHours": 8,
                    "tasks": [
                        {"title": "Login form", "techStack": ["react"], "filePath": "src/Login.tsx"},
                        {"title": "Reset form", "filePath": "src/reset.css"},
                    ],
                },
                {"name": "Auth API", "type": "SERVICE", "tasks": [{"title": "Token endpoint"}]},
            ],
        })
        self.code = "export const Login = () => null;"
        self.error: Optional[Exception] = None
        self.calls: List[str] = []

    async def analyze_requirement(self, content: str):
        self.calls.append("analyze")
        if self.error is not None:
            raise self.error
        return self.analysis

    async def generate_code(self, description, tech_stack, file_path=None):
        self.calls.append("generate")
        if self.error is not None:
            raise self.error
        return self.code


@pytest.fixture
def fake_ai():
    return FakeCompletionClient()


# =============================================================================
# Application
# =============================================================================


@pytest.fixture
def app(db_session, fake_ai):
    from main import create_app
    from aiforge.database.session import get_db_session
    from aiforge.integrations.openai.client import completion_client_dependency

    application = create_app()
    application.dependency_overrides[get_db_session] = lambda: db_session
    application.dependency_overrides[completion_client_dependency] = lambda: fake_ai
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app, raise_server_exceptions=False)


# =============================================================================
# Markers
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "security: mark test as security-focused")
    config.addinivalue_line("markers", "slow: mark test as slow-running")
