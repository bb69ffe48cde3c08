"""
Tenant isolation tests for the data gateway.

CRITICAL: These tests verify that:
1. Rows created in tenant A are invisible to a gateway for tenant B
2. Updates and deletes from tenant B targeting A's ids affect zero rows
3. Client-supplied tenant_id in payloads and filters never widens scope
4. Parent references must belong to the same tenant
"""

import pytest

from aiforge.models import Project, ProjectStatus, Requirement, TaskStatus
from aiforge.platform.errors import NotFoundError
from aiforge.repositories.base_repo import TenantScopedRepository
from aiforge.repositories.tenant_gateway import (
    ProjectRepository,
    TenantDataGateway,
)


@pytest.fixture
def tenant_a(make_tenant):
    return make_tenant("tenant-a")


@pytest.fixture
def tenant_b(make_tenant):
    return make_tenant("tenant-b")


@pytest.fixture
def gateway_a(db_session, tenant_a):
    return TenantDataGateway(db_session, tenant_a.id)


@pytest.fixture
def gateway_b(db_session, tenant_b):
    return TenantDataGateway(db_session, tenant_b.id)


@pytest.fixture
def tree_a(gateway_a):
    """A project -> requirement -> module -> task chain in tenant A."""
    project = gateway_a.project.create({"name": "Alpha"})
    requirement = gateway_a.requirement.create({
        "project_id": project.id,
        "title": "Login",
        "content": "Users log in",
    })
    module = gateway_a.module.create({"project_id": project.id, "name": "Auth"})
    task = gateway_a.task.create({"module_id": module.id, "title": "Form"})
    return {"project": project, "requirement": requirement, "module": module, "task": task}


class TestRepositoryConstruction:

    @pytest.mark.parametrize("tenant_id", ["", None])
    def test_tenant_id_required(self, db_session, tenant_id):
        with pytest.raises(ValueError, match="tenant_id is required"):
            ProjectRepository(db_session, tenant_id)

    @pytest.mark.parametrize("tenant_id", ["", None])
    def test_gateway_requires_tenant(self, db_session, tenant_id):
        with pytest.raises(ValueError):
            TenantDataGateway(db_session, tenant_id)

    def test_repository_is_abstract(self, db_session):
        with pytest.raises(TypeError):
            TenantScopedRepository(db_session, "t1")

    def test_gateway_exposes_every_entity(self, gateway_a, tenant_a):
        for repo in (gateway_a.project, gateway_a.requirement, gateway_a.requirement_analysis,
                     gateway_a.module, gateway_a.task):
            assert repo.tenant_id == tenant_a.id


@pytest.mark.security
class TestCrossTenantIsolation:

    @pytest.mark.parametrize("entity", ["project", "requirement", "module", "task"])
    def test_reads_never_cross_tenants(self, gateway_b, tree_a, entity):
        repo = getattr(gateway_b, entity)
        row = tree_a[entity]

        assert repo.find_many() == []
        assert repo.find_unique({"id": row.id}) is None
        assert repo.get_by_id(row.id) is None
        assert repo.count() == 0
        assert repo.exists({"id": row.id}) is False

    @pytest.mark.parametrize("entity", ["project", "requirement", "module", "task"])
    def test_update_from_other_tenant_affects_nothing(self, db_session, gateway_a, gateway_b, tree_a, entity):
        row = tree_a[entity]
        field = "title" if entity in ("requirement", "task") else "name"

        assert getattr(gateway_b, entity).update({"id": row.id}, {field: "hijacked"}) == 0

        db_session.expire_all()
        assert getattr(getattr(gateway_a, entity).get_by_id(row.id), field) != "hijacked"

    @pytest.mark.parametrize("entity", ["project", "requirement", "module", "task"])
    def test_delete_from_other_tenant_affects_nothing(self, gateway_a, gateway_b, tree_a, entity):
        row = tree_a[entity]

        assert getattr(gateway_b, entity).delete({"id": row.id}) == 0
        assert getattr(gateway_a, entity).get_by_id(row.id) is not None

    def test_get_or_404_hides_other_tenant(self, gateway_b, tree_a):
        with pytest.raises(NotFoundError) as exc_info:
            gateway_b.project.get_or_404(tree_a["project"].id, code="PROJECT_NOT_FOUND")
        assert exc_info.value.code == "PROJECT_NOT_FOUND"
        assert exc_info.value.status_code == 404

    def test_each_tenant_sees_only_its_rows(self, gateway_a, gateway_b):
        gateway_a.project.create({"name": "A1"})
        gateway_a.project.create({"name": "A2"})
        gateway_b.project.create({"name": "B1"})

        assert {p.name for p in gateway_a.project.find_many()} == {"A1", "A2"}
        assert {p.name for p in gateway_b.project.find_many()} == {"B1"}


@pytest.mark.security
class TestClientSuppliedTenantId:

    def test_create_ignores_payload_tenant(self, gateway_a, tenant_a, tenant_b):
        project = gateway_a.project.create({"name": "Sneaky", "tenant_id": tenant_b.id})
        assert project.tenant_id == tenant_a.id

    def test_update_cannot_move_rows(self, db_session, gateway_a, tenant_a, tenant_b, tree_a):
        project_id = tree_a["project"].id
        gateway_a.project.update({"id": project_id}, {"tenant_id": tenant_b.id, "name": "Renamed"})

        db_session.expire_all()
        project = db_session.get(Project, project_id)
        assert project.tenant_id == tenant_a.id
        assert project.name == "Renamed"

    def test_update_never_changes_id(self, db_session, gateway_a, tree_a):
        project_id = tree_a["project"].id
        gateway_a.project.update({"id": project_id}, {"id": "new-id", "name": "Same row"})
        assert gateway_a.project.get_by_id(project_id).name == "Same row"
        assert gateway_a.project.get_by_id("new-id") is None

    def test_foreign_tenant_filter_matches_nothing(self, gateway_a, tenant_b, tree_a):
        assert gateway_a.project.find_many({"tenant_id": tenant_b.id}) == []
        assert gateway_a.project.update({"tenant_id": tenant_b.id}, {"name": "x"}) == 0
        assert gateway_a.project.delete({"tenant_id": tenant_b.id}) == 0

    def test_own_tenant_filter_is_allowed(self, gateway_a, tenant_a, tree_a):
        assert len(gateway_a.project.find_many({"tenant_id": tenant_a.id})) == 1


@pytest.mark.security
class TestParentReferences:

    def test_requirement_under_foreign_project_rejected(self, gateway_b, tree_a):
        with pytest.raises(NotFoundError) as exc_info:
            gateway_b.requirement.create({
                "project_id": tree_a["project"].id,
                "title": "Smuggled",
                "content": "x",
            })
        assert exc_info.value.message == "Project not found"

    def test_task_under_foreign_module_rejected(self, gateway_b, tree_a):
        with pytest.raises(NotFoundError):
            gateway_b.task.create({"module_id": tree_a["module"].id, "title": "Smuggled"})

    def test_reparenting_to_foreign_module_rejected(self, gateway_a, gateway_b, tree_a):
        project_b = gateway_b.project.create({"name": "Beta"})
        module_b = gateway_b.module.create({"project_id": project_b.id, "name": "Other"})
        with pytest.raises(NotFoundError):
            gateway_a.module.update({"id": tree_a["module"].id}, {"parent_id": module_b.id})

    def test_missing_parent_rejected(self, gateway_a):
        with pytest.raises(NotFoundError):
            gateway_a.task.create({"module_id": "no-such-module", "title": "Orphan"})


class TestQueries:

    def test_where_order_limit_offset(self, gateway_a, tree_a):
        module = tree_a["module"]
        for index in range(1, 5):
            gateway_a.task.create({"module_id": module.id, "title": f"T{index}", "order": index})

        tasks = gateway_a.task.find_many({"module_id": module.id}, order_by="-order", limit=2, offset=1)
        assert [t.title for t in tasks] == ["T3", "T2"]

    def test_order_by_multiple_fields(self, gateway_a):
        gateway_a.project.create({"name": "b", "status": ProjectStatus.COMPLETED})
        gateway_a.project.create({"name": "a", "status": ProjectStatus.COMPLETED})
        gateway_a.project.create({"name": "c", "status": ProjectStatus.ARCHIVED})

        names = [p.name for p in gateway_a.project.find_many(order_by=["status", "name"])]
        assert names == ["c", "a", "b"]

    def test_none_filter_matches_null(self, gateway_a, tree_a):
        gateway_a.module.create({"project_id": tree_a["project"].id, "name": "Child", "parent_id": tree_a["module"].id})
        roots = gateway_a.module.find_many({"parent_id": None})
        assert [m.name for m in roots] == ["Auth"]

    def test_unknown_column_rejected(self, gateway_a):
        with pytest.raises(ValueError, match="Unknown column"):
            gateway_a.project.find_many({"colour": "blue"})
        with pytest.raises(ValueError):
            gateway_a.project.create({"name": "x", "colour": "blue"})
        with pytest.raises(ValueError):
            gateway_a.project.find_many(order_by="colour")

    @pytest.mark.parametrize("operation", ["update", "delete"])
    def test_bulk_operations_require_filter(self, gateway_a, operation):
        with pytest.raises(ValueError):
            if operation == "update":
                gateway_a.project.update({}, {"name": "all"})
            else:
                gateway_a.project.delete({})

    def test_bulk_update_counts_rows(self, gateway_a, tree_a):
        module = tree_a["module"]
        gateway_a.task.create({"module_id": module.id, "title": "Second"})

        affected = gateway_a.task.update({"module_id": module.id}, {"status": TaskStatus.COMPLETED})

        assert affected == 2
        assert gateway_a.task.count({"status": TaskStatus.COMPLETED}) == 2

    def test_delete_cascades_to_children(self, db_session, gateway_a, tree_a):
        assert gateway_a.project.delete({"id": tree_a["project"].id}) == 1
        db_session.expire_all()

        assert gateway_a.requirement.count() == 0
        assert gateway_a.module.count() == 0
        assert gateway_a.task.count() == 0
        assert db_session.query(Requirement).count() == 0

    def test_latest_analysis(self, gateway_a, tree_a):
        requirement = tree_a["requirement"]
        assert gateway_a.requirement_analysis.latest_for(requirement.id) is None
        analysis = gateway_a.requirement_analysis.create({
            "requirement_id": requirement.id,
            "summary": "s",
            "key_features": ["a"],
        })
        assert gateway_a.requirement_analysis.latest_for(requirement.id).id == analysis.id
