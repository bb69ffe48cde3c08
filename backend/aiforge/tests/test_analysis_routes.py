"""
Tests for the AI-backed routes: requirement analysis and task code generation.

The completion client is the FakeCompletionClient from conftest, so these
tests cover status transitions, persistence and aiRequests accounting.
"""

import pytest
from sqlalchemy.exc import OperationalError

from aiforge.constants.permissions import Role
from aiforge.integrations.openai.exceptions import CompletionError, CompletionTimeoutError
from aiforge.integrations.openai.models import AnalysisResult
from aiforge.models import Module, RequirementAnalysis, Task
from aiforge.services import analysis_service
from aiforge.services.quota_guard import QuotaGuard


@pytest.fixture
def tenant(make_tenant):
    return make_tenant("acme")


@pytest.fixture
def member(tenant, member_of):
    return member_of(tenant, Role.MEMBER)


@pytest.fixture
def headers(member, tenant, auth_headers):
    return auth_headers(member, tenant)


@pytest.fixture
def requirement(client, tenant, headers, make_tenant_project):
    project = make_tenant_project(tenant, "Portal")
    response = client.post(
        "/api/requirements",
        json={"projectId": project.id, "title": "Login", "content": "Users log in and reset passwords"},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


def _ai_used(db_session, tenant) -> int:
    db_session.expire_all()
    return QuotaGuard(db_session).get_usage(tenant.id)["aiRequests"]["used"]


class TestAnalyzeRequirement:

    def test_creates_analysis_modules_and_tasks(self, client, db_session, tenant, headers, requirement, fake_ai):
        response = client.post(f"/api/requirements/{requirement['id']}/analyze", headers=headers)

        assert response.status_code == 200, response.text
        data = response.json()["data"]
        assert data["requirement"]["status"] == "ANALYZED"
        assert data["analysis"]["summary"] == "Login page with password reset"
        assert data["analysis"]["complexity"] == "MEDIUM"
        assert [m["name"] for m in data["modules"]] == ["Auth UI", "Auth API"]
        assert [len(m["tasks"]) for m in data["modules"]] == [2, 1]
        assert fake_ai.calls == ["analyze"]

        assert db_session.query(RequirementAnalysis).count() == 1
        assert db_session.query(Module).filter(Module.tenant_id == tenant.id).count() == 2
        assert db_session.query(Task).filter(Task.tenant_id == tenant.id).count() == 3
        assert _ai_used(db_session, tenant) == 1

    def test_detail_shows_latest_analysis(self, client, headers, requirement):
        client.post(f"/api/requirements/{requirement['id']}/analyze", headers=headers)

        data = client.get(f"/api/requirements/{requirement['id']}", headers=headers).json()["data"]

        assert data["analysis"]["keyFeatures"] == ["login", "password reset"]
        assert [m["order"] for m in data["modules"]] == [0, 1]

    @pytest.mark.parametrize("error", [CompletionError("boom", status_code=500), CompletionTimeoutError()])
    def test_ai_failure_resets_status_and_releases_quota(
        self, client, db_session, tenant, headers, requirement, fake_ai, error
    ):
        fake_ai.error = error

        response = client.post(f"/api/requirements/{requirement['id']}/analyze", headers=headers)

        assert response.status_code == 502
        assert response.json()["error"]["code"] == "AI_SERVICE_ERROR"
        detail = client.get(f"/api/requirements/{requirement['id']}", headers=headers).json()["data"]
        assert detail["status"] == "PENDING"
        assert detail["analysis"] is None
        assert _ai_used(db_session, tenant) == 0

    def test_unstorable_result_resets_status_and_releases_quota(
        self, client, db_session, tenant, headers, requirement, fake_ai
    ):
        fake_ai.analysis.modules[1].name = None

        response = client.post(f"/api/requirements/{requirement['id']}/analyze", headers=headers)

        assert response.status_code == 502
        assert response.json()["error"]["code"] == "AI_SERVICE_ERROR"
        detail = client.get(f"/api/requirements/{requirement['id']}", headers=headers).json()["data"]
        assert detail["status"] == "PENDING"
        assert detail["analysis"] is None
        assert db_session.query(Module).filter(Module.tenant_id == tenant.id).count() == 0
        assert db_session.query(Task).filter(Task.tenant_id == tenant.id).count() == 0
        assert _ai_used(db_session, tenant) == 0

    def test_non_finite_estimate_is_stored_as_zero(self, client, headers, requirement, fake_ai):
        fake_ai.analysis = AnalysisResult.from_dict({"summary": "s", "estimatedHours": "nan"})

        response = client.post(f"/api/requirements/{requirement['id']}/analyze", headers=headers)

        assert response.status_code == 200, response.text
        assert response.json()["data"]["analysis"]["estimatedHours"] == 0.0
        assert response.json()["data"]["requirement"]["status"] == "ANALYZED"

    def test_viewer_is_denied_before_ai_call(self, client, tenant, member_of, auth_headers, requirement, fake_ai):
        viewer = member_of(tenant, Role.VIEWER)

        response = client.post(
            f"/api/requirements/{requirement['id']}/analyze", headers=auth_headers(viewer, tenant)
        )

        assert response.status_code == 403
        assert fake_ai.calls == []

    def test_ai_quota_exhausted(self, client, make_tenant, member_of, auth_headers, make_tenant_project, fake_ai):
        tenant = make_tenant("tiny", max_ai_requests=0)
        user = member_of(tenant, Role.MEMBER)
        headers = auth_headers(user, tenant)
        project = make_tenant_project(tenant)
        created = client.post(
            "/api/requirements",
            json={"projectId": project.id, "title": "x", "content": "y"},
            headers=headers,
        ).json()["data"]

        response = client.post(f"/api/requirements/{created['id']}/analyze", headers=headers)

        assert response.status_code == 429
        assert response.json()["error"]["details"]["resource"] == "aiRequests"
        assert fake_ai.calls == []

    @pytest.mark.security
    def test_other_tenant_requirement_not_found(
        self, client, make_tenant, member_of, auth_headers, requirement, fake_ai
    ):
        other = make_tenant("other")
        intruder = member_of(other, Role.ADMIN)

        response = client.post(
            f"/api/requirements/{requirement['id']}/analyze", headers=auth_headers(intruder, other)
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "REQUIREMENT_NOT_FOUND"
        assert fake_ai.calls == []

    def test_ai_not_configured(self, app, client, headers, requirement, monkeypatch):
        from aiforge.integrations.openai.client import completion_client_dependency

        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        del app.dependency_overrides[completion_client_dependency]

        response = client.post(f"/api/requirements/{requirement['id']}/analyze", headers=headers)

        assert response.status_code == 502
        assert response.json()["error"]["code"] == "AI_SERVICE_ERROR"


class TestGenerateCode:

    @pytest.fixture
    def analyzed_tasks(self, client, headers, requirement):
        data = client.post(f"/api/requirements/{requirement['id']}/analyze", headers=headers).json()["data"]
        return {task["title"]: task for module in data["modules"] for task in module["tasks"]}

    @pytest.mark.parametrize("title, language", [
        ("Login form", "typescript"),
        ("Reset form", "css"),
        ("Token endpoint", "typescript"),
    ])
    def test_stores_code_and_language(self, client, headers, analyzed_tasks, fake_ai, title, language):
        task_id = analyzed_tasks[title]["id"]

        response = client.post(f"/api/tasks/{task_id}/generate-code", headers=headers)

        assert response.status_code == 200, response.text
        data = response.json()["data"]
        assert data["status"] == "REVIEW"
        assert data["generatedCode"] == fake_ai.code
        assert data["codeLanguage"] == language

    def test_spends_one_ai_request(self, client, db_session, tenant, headers, analyzed_tasks):
        client.post(f"/api/tasks/{analyzed_tasks['Login form']['id']}/generate-code", headers=headers)
        assert _ai_used(db_session, tenant) == 2

    def test_failure_returns_task_to_todo(self, client, db_session, tenant, headers, analyzed_tasks, fake_ai):
        task_id = analyzed_tasks["Login form"]["id"]
        fake_ai.error = CompletionError("upstream down", status_code=503)

        response = client.post(f"/api/tasks/{task_id}/generate-code", headers=headers)

        assert response.status_code == 502
        task = client.get(f"/api/tasks/{task_id}", headers=headers).json()["data"]
        assert task["status"] == "TODO"
        assert task["generatedCode"] is None
        assert _ai_used(db_session, tenant) == 1

    def test_failed_write_returns_task_to_todo(
        self, client, db_session, tenant, headers, analyzed_tasks, monkeypatch
    ):
        task_id = analyzed_tasks["Login form"]["id"]

        def locked(file_path):
            raise OperationalError("UPDATE tasks", {}, Exception("database is locked"))

        monkeypatch.setattr(analysis_service, "detect_language", locked)

        response = client.post(f"/api/tasks/{task_id}/generate-code", headers=headers)

        assert response.status_code == 502
        assert response.json()["error"]["code"] == "AI_SERVICE_ERROR"
        task = client.get(f"/api/tasks/{task_id}", headers=headers).json()["data"]
        assert task["status"] == "TODO"
        assert task["generatedCode"] is None
        assert _ai_used(db_session, tenant) == 1

    def test_viewer_cannot_generate(self, client, tenant, member_of, auth_headers, analyzed_tasks, fake_ai):
        viewer = member_of(tenant, Role.VIEWER)
        calls_before = list(fake_ai.calls)

        response = client.post(
            f"/api/tasks/{analyzed_tasks['Login form']['id']}/generate-code",
            headers=auth_headers(viewer, tenant),
        )

        assert response.status_code == 403
        assert fake_ai.calls == calls_before

    def test_missing_task(self, client, headers):
        response = client.post("/api/tasks/missing/generate-code", headers=headers)
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "TASK_NOT_FOUND"
