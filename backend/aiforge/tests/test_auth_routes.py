"""
Tests for the /api/auth routes.

Covers registration (user + tenant + ADMIN membership + quota), login
tenant selection, explicit refresh, tenant switching, /me and logout.
"""

import pytest

from aiforge.auth.token_service import get_token_service
from aiforge.constants.permissions import Role
from aiforge.models import MemberStatus, Tenant, TenantMember, TenantQuota, TenantStatus, User

PASSWORD = "correct-horse"


@pytest.fixture
def registered(client):
    response = client.post("/api/auth/register", json={
        "email": "Alice@Example.com",
        "password": PASSWORD,
        "name": "Alice",
        "tenantName": "Acme Corp",
    })
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.fixture
def login_user(make_user):
    return make_user(email="bob@example.com", password=PASSWORD)


def _login(client, **extra):
    body = {"email": "bob@example.com", "password": PASSWORD}
    body.update(extra)
    return client.post("/api/auth/login", json=body)


class TestRegister:

    def test_register_creates_everything(self, db_session, registered):
        user = db_session.query(User).filter(User.email == "alice@example.com").one()
        tenant = db_session.query(Tenant).filter(Tenant.slug == "acme-corp").one()
        membership = db_session.query(TenantMember).filter(TenantMember.user_id == user.id).one()
        quota = db_session.query(TenantQuota).filter(TenantQuota.tenant_id == tenant.id).one()

        assert registered["user"]["id"] == user.id
        assert registered["user"]["role"] == "ADMIN"
        assert registered["tenant"]["slug"] == "acme-corp"
        assert tenant.admin_id == user.id
        assert user.current_tenant_id == tenant.id
        assert membership.role == Role.ADMIN
        assert membership.status == MemberStatus.ACTIVE
        assert (quota.max_projects, quota.used_users) == (10, 1)
        assert user.password_hash != PASSWORD

    def test_register_returns_verifiable_tokens(self, registered):
        claims = get_token_service().verify_access_token(registered["token"])
        assert claims.tenant_id == registered["tenant"]["id"]
        assert claims.role == "ADMIN"
        assert registered["expiresIn"] == 3600
        assert get_token_service().verify_refresh_token(registered["refreshToken"]).user_id == claims.user_id

    def test_register_sets_http_only_cookie(self, client):
        response = client.post("/api/auth/register", json={"email": "c@example.com", "password": PASSWORD})
        cookie = response.headers["set-cookie"]
        assert cookie.startswith("auth-token=")
        assert "HttpOnly" in cookie
        assert "samesite=lax" in cookie.lower()

    def test_duplicate_email(self, client, registered):
        response = client.post("/api/auth/register", json={
            "email": "alice@example.com", "password": PASSWORD, "tenantName": "Other",
        })
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "USER_EXISTS"

    def test_duplicate_tenant_slug(self, client, registered):
        response = client.post("/api/auth/register", json={
            "email": "someone@example.com", "password": PASSWORD, "tenantName": "ACME  corp!",
        })
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "TENANT_EXISTS"

    @pytest.mark.parametrize("body", [
        {"email": "not-an-email", "password": PASSWORD},
        {"email": "x@example.com", "password": "short"},
        {"password": PASSWORD},
    ])
    def test_invalid_body(self, client, body):
        response = client.post("/api/auth/register", json=body)
        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert isinstance(error["details"], list)

    def test_register_without_secret_writes_nothing(self, client, db_session, monkeypatch):
        monkeypatch.delenv("JWT_SECRET")
        response = client.post("/api/auth/register", json={"email": "d@example.com", "password": PASSWORD})
        assert response.status_code == 500
        assert response.json()["error"]["code"] == "SERVER_ERROR"
        assert db_session.query(User).count() == 0


class TestLogin:

    def test_login_picks_first_membership(self, client, login_user, make_tenant, add_member):
        first = make_tenant("first")
        add_member(login_user, first, Role.MEMBER)

        response = _login(client)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["tenant"]["id"] == first.id
        assert data["user"]["role"] == "MEMBER"
        assert "auth-token=" in response.headers["set-cookie"]

    def test_login_prefers_current_tenant(self, client, db_session, login_user, make_tenant, add_member):
        first, second = make_tenant("first"), make_tenant("second")
        add_member(login_user, first)
        add_member(login_user, second, Role.MANAGER)
        login_user.current_tenant_id = second.id
        db_session.commit()

        assert _login(client).json()["data"]["tenant"]["id"] == second.id

    def test_login_with_tenant_slug(self, client, db_session, login_user, make_tenant, add_member):
        first, second = make_tenant("first"), make_tenant("second")
        add_member(login_user, first)
        add_member(login_user, second, Role.VIEWER)

        data = _login(client, tenantSlug="second").json()["data"]

        assert data["tenant"]["id"] == second.id
        assert data["user"]["role"] == "VIEWER"
        db_session.expire_all()
        assert db_session.get(User, login_user.id).current_tenant_id == second.id

    def test_login_slug_without_membership(self, client, login_user, make_tenant, add_member):
        add_member(login_user, make_tenant("first"))
        make_tenant("other")

        response = _login(client, tenantSlug="other")
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "TENANT_ACCESS_DENIED"

    def test_login_without_any_membership(self, client, login_user):
        response = _login(client)
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "NO_TENANT_ACCESS"

    @pytest.mark.security
    def test_wrong_password_and_unknown_email_look_the_same(self, client, login_user, make_tenant, add_member):
        add_member(login_user, make_tenant())

        wrong_password = _login(client, password="wrong-password")
        unknown_email = _login(client, email="nobody@example.com")

        assert wrong_password.status_code == unknown_email.status_code == 401
        assert wrong_password.json() == unknown_email.json()
        assert wrong_password.json()["error"]["message"] == "Invalid email or password"

    def test_suspended_membership_not_selectable(self, client, login_user, make_tenant, add_member):
        add_member(login_user, make_tenant("first"), status=MemberStatus.SUSPENDED)
        assert _login(client).json()["error"]["code"] == "NO_TENANT_ACCESS"


class TestRefresh:

    def test_refresh_issues_new_pair(self, client, registered):
        response = client.post("/api/auth/refresh", json={"refreshToken": registered["refreshToken"]})
        assert response.status_code == 200
        data = response.json()["data"]
        claims = get_token_service().verify_access_token(data["token"])
        assert claims.user_id == registered["user"]["id"]
        assert claims.tenant_id == registered["tenant"]["id"]

    @pytest.mark.security
    def test_access_token_cannot_refresh(self, client, registered):
        response = client.post("/api/auth/refresh", json={"refreshToken": registered["token"]})
        assert response.status_code == 401

    def test_refresh_after_losing_all_memberships(self, client, db_session, registered):
        db_session.query(TenantMember).delete()
        db_session.commit()
        response = client.post("/api/auth/refresh", json={"refreshToken": registered["refreshToken"]})
        assert response.json()["error"]["code"] == "NO_TENANT_ACCESS"


class TestSwitchTenant:

    def _bearer(self, registered):
        return {"Authorization": f"Bearer {registered['token']}"}

    def test_switch_to_member_tenant(self, client, db_session, registered, make_tenant, add_member):
        other = make_tenant("other")
        user = db_session.get(User, registered["user"]["id"])
        add_member(user, other, Role.MANAGER)

        response = client.post(
            "/api/auth/switch-tenant", json={"tenantId": other.id}, headers=self._bearer(registered)
        )

        assert response.status_code == 200
        claims = get_token_service().verify_access_token(response.json()["data"]["token"])
        assert (claims.tenant_id, claims.role) == (other.id, "MANAGER")

    def test_switch_without_membership(self, client, registered, make_tenant):
        other = make_tenant("other")
        response = client.post(
            "/api/auth/switch-tenant", json={"tenantId": other.id}, headers=self._bearer(registered)
        )
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "TENANT_ACCESS_DENIED"

    def test_switch_to_inactive_tenant(self, client, db_session, registered, make_tenant, add_member):
        other = make_tenant("paused", status=TenantStatus.SUSPENDED)
        add_member(db_session.get(User, registered["user"]["id"]), other)

        response = client.post(
            "/api/auth/switch-tenant", json={"tenantId": other.id}, headers=self._bearer(registered)
        )
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "TENANT_INACTIVE"

    def test_switch_requires_authentication(self, client):
        response = client.post("/api/auth/switch-tenant", json={"tenantId": "x"})
        assert response.status_code == 401


class TestMeAndLogout:

    def test_me_lists_memberships(self, client, registered):
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {registered['token']}"})
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["email"] == "alice@example.com"
        assert [t["role"] for t in data["tenants"]] == ["ADMIN"]
        assert data["tenants"][0]["tenant"]["slug"] == "acme-corp"
        assert data["session"]["tenantId"] == data["tenants"][0]["tenant"]["id"]
        assert data["session"]["expiresAt"] is not None

    def test_me_with_cookie(self, client, registered):
        # register stored the cookie on the test client
        assert client.get("/api/auth/me").status_code == 200

    def test_logout_clears_cookie(self, client, registered):
        response = client.post("/api/auth/logout")
        assert response.status_code == 200
        assert response.json()["data"] == {"message": "Logged out"}
        assert 'auth-token=""' in response.headers["set-cookie"] or "Max-Age=0" in response.headers["set-cookie"]

    def test_logout_without_session(self, client):
        assert client.post("/api/auth/logout").status_code == 200
