"""
Unit tests for tenant scoping in the directory and resource DAOs.

WHY: Every tenant-scoped query must filter by org_id. These tests create
rows in two organizations and check that nothing crosses over.
"""

import pytest
from sqlalchemy.exc import InvalidRequestError

from tasksetu.dao.organization import OrganizationDAO
from tasksetu.dao.project import ProjectDAO
from tasksetu.dao.task import TaskDAO
from tasksetu.models.organization import OrganizationStatus
from tasksetu.models.project import ProjectStatus
from tasksetu.models.task import TaskStatus
from tests.factories import OrganizationFactory, ProjectFactory, TaskFactory, UserFactory


class TestOrganizationDAO:
    async def test_get_by_slug_is_case_insensitive(self, db_session, test_org):
        org = await OrganizationDAO(db_session).get_by_slug("ACME-Corp")
        assert org is not None
        assert org.id == test_org.id

    async def test_slug_exists(self, db_session, test_org):
        dao = OrganizationDAO(db_session)
        assert await dao.slug_exists("acme-corp") is True
        assert await dao.slug_exists("acme") is False

    async def test_list_and_count_by_status(self, db_session, test_org):
        suspended = await OrganizationFactory.create(
            db_session, name="Dormant Ltd", status=OrganizationStatus.SUSPENDED
        )
        dao = OrganizationDAO(db_session)

        listed = await dao.list_organizations(status=OrganizationStatus.SUSPENDED)

        assert [org.id for org in listed] == [suspended.id]
        assert await dao.count_organizations() == 2
        assert await dao.count_organizations(status=OrganizationStatus.ACTIVE) == 1

    async def test_search_matches_name_or_slug(self, db_session, test_org):
        await OrganizationFactory.create(db_session, name="Globex", slug="globex")
        dao = OrganizationDAO(db_session)

        assert [o.slug for o in await dao.list_organizations(search="ACME")] == ["acme-corp"]
        assert [o.slug for o in await dao.list_organizations(search="globe")] == ["globex"]
        assert await dao.count_organizations(search="globe") == 1
        assert await dao.count_organizations(search="nomatch") == 0

    async def test_members_collection_is_never_lazy_loaded(self, db_session, test_org, test_admin):
        """Members are counted through UserDAO; touching the collection is a bug."""
        org = await OrganizationDAO(db_session).get_by_id(test_org.id)

        with pytest.raises(InvalidRequestError):
            org.users


class TestProjectScoping:
    async def test_list_for_org_only_returns_own_projects(self, db_session, test_org, test_admin):
        other_org = await OrganizationFactory.create(db_session)
        own = await ProjectFactory.create(db_session, test_org, created_by=test_admin, name="Own")
        await ProjectFactory.create(db_session, other_org, name="Foreign")
        dao = ProjectDAO(db_session)

        projects = await dao.list_for_org(test_org.id)

        assert [p.id for p in projects] == [own.id]
        assert await dao.count_for_org(test_org.id) == 1
        assert await dao.get_by_id_and_org(own.id, other_org.id) is None

    async def test_status_filter(self, db_session, test_org):
        await ProjectFactory.create(db_session, test_org, name="Live")
        await ProjectFactory.create(db_session, test_org, name="Old", status=ProjectStatus.ARCHIVED)

        archived = await ProjectDAO(db_session).list_for_org(test_org.id, status=ProjectStatus.ARCHIVED)

        assert [p.name for p in archived] == ["Old"]


class TestTaskScoping:
    async def test_team_and_personal_scopes_do_not_mix(self, db_session, test_org, test_employee):
        individual = await UserFactory.create_individual(db_session)
        team_task = await TaskFactory.create(db_session, test_employee, org=test_org, title="Team")
        personal = await TaskFactory.create(db_session, individual, title="Mine")
        dao = TaskDAO(db_session)

        assert [t.id for t in await dao.list_tasks(org_id=test_org.id)] == [team_task.id]
        assert [t.id for t in await dao.list_tasks(owner_id=individual.id)] == [personal.id]
        assert await dao.get_personal(personal.id, individual.id) is not None
        assert await dao.get_personal(team_task.id, test_employee.id) is None

    async def test_personal_scope_is_per_owner(self, db_session):
        alice = await UserFactory.create_individual(db_session)
        bob = await UserFactory.create_individual(db_session)
        task = await TaskFactory.create(db_session, alice)

        assert await TaskDAO(db_session).get_personal(task.id, bob.id) is None
        assert await TaskDAO(db_session).count_tasks(owner_id=bob.id) == 0

    async def test_filters(self, db_session, test_org, test_admin, test_employee):
        project = await ProjectFactory.create(db_session, test_org)
        await TaskFactory.create(db_session, test_admin, org=test_org, project=project, assignee=test_employee)
        await TaskFactory.create(db_session, test_admin, org=test_org, status=TaskStatus.COMPLETED)
        dao = TaskDAO(db_session)

        assert await dao.count_tasks(org_id=test_org.id) == 2
        assert await dao.count_tasks(org_id=test_org.id, project_id=project.id) == 1
        assert await dao.count_tasks(org_id=test_org.id, assignee_id=test_employee.id) == 1
        assert await dao.count_tasks(org_id=test_org.id, status=TaskStatus.COMPLETED) == 1

    async def test_unscoped_listing_is_refused(self, db_session):
        with pytest.raises(ValueError):
            await TaskDAO(db_session).list_tasks()
