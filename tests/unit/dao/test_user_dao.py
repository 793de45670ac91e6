"""
Unit tests for UserDAO.

WHY: Token consumption must be single-use and expiry-aware, and seat
counts are derived from these queries. Both are checked against a real
(SQLite) database rather than mocks.
"""

from datetime import timedelta, datetime

import pytest

from tasksetu.core.auth import hash_password, verify_password
from tasksetu.dao.user import UserDAO
from tasksetu.models.user import UserRole, UserStatus
from tests.factories import OrganizationFactory, UserFactory


class TestLookups:
    async def test_get_by_email_is_case_insensitive(self, db_session, test_employee):
        dao = UserDAO(db_session)

        found = await dao.get_by_email("  EMPLOYEE@Acme.com ")
        assert found is not None
        assert found.id == test_employee.id
        assert await dao.email_exists("Employee@ACME.com") is True
        assert await dao.email_exists("nobody@acme.com") is False

    async def test_get_members_is_tenant_scoped(self, db_session, test_org, test_admin, test_employee):
        other_org = await OrganizationFactory.create(db_session)
        await UserFactory.create(db_session, org=other_org)

        members = await UserDAO(db_session).get_members(test_org.id)

        assert [m.id for m in members] == [test_admin.id, test_employee.id]

    async def test_get_by_id_and_org_hides_other_tenants(self, db_session, test_employee):
        other_org = await OrganizationFactory.create(db_session)
        dao = UserDAO(db_session)

        assert await dao.get_by_id_and_org(test_employee.id, other_org.id) is None
        assert (await dao.get_by_id_and_org(test_employee.id, test_employee.org_id)).id == test_employee.id


class TestInviteTokens:
    async def test_consume_invite_token_activates_once(self, db_session, test_org, test_admin):
        invited = await UserFactory.create_invited(db_session, test_org, invited_by=test_admin, token="tok-1")
        dao = UserDAO(db_session)

        user = await dao.consume_invite_token("tok-1", hash_password("Abc12345"), first_name="Asha")

        assert user is not None
        assert user.id == invited.id
        assert user.status == UserStatus.ACTIVE
        assert user.email_verified is True
        assert user.invite_token is None
        assert user.first_name == "Asha"
        assert verify_password("Abc12345", user.hashed_password)

        # Second use of the same token matches nothing
        assert await dao.consume_invite_token("tok-1", hash_password("Other123")) is None

    async def test_expired_invite_token_does_not_resolve(self, db_session, test_org):
        await UserFactory.create_invited(
            db_session, test_org, token="old-tok", expires_in=timedelta(minutes=-1)
        )
        dao = UserDAO(db_session)

        assert await dao.get_by_invite_token("old-tok") is None
        assert await dao.consume_invite_token("old-tok", hash_password("Abc12345")) is None

    async def test_unknown_invite_token(self, db_session):
        assert await UserDAO(db_session).get_by_invite_token("missing") is None


class TestResetTokens:
    async def test_consume_reset_token(self, db_session, test_employee):
        dao = UserDAO(db_session)
        await dao.update(
            test_employee.id,
            password_reset_token="reset-1",
            password_reset_expires_at=datetime.utcnow() + timedelta(minutes=30),
        )

        assert (await dao.get_by_reset_token("reset-1")).id == test_employee.id
        user = await dao.consume_reset_token("reset-1", hash_password("NewPass99"))

        assert user is not None
        assert user.password_reset_token is None
        assert verify_password("NewPass99", user.hashed_password)
        assert await dao.consume_reset_token("reset-1", hash_password("Again999")) is None

    async def test_expired_reset_token_leaves_password(self, db_session, test_employee):
        dao = UserDAO(db_session)
        await dao.update(
            test_employee.id,
            password_reset_token="reset-old",
            password_reset_expires_at=datetime.utcnow() - timedelta(minutes=1),
        )

        assert await dao.consume_reset_token("reset-old", hash_password("NewPass99")) is None
        user = await dao.get_by_id(test_employee.id)
        assert verify_password("Abc12345", user.hashed_password)

    async def test_inactive_user_cannot_reset(self, db_session, test_org):
        user = await UserFactory.create(
            db_session,
            org=test_org,
            status=UserStatus.INACTIVE,
            password_reset_token="reset-inactive",
            password_reset_expires_at=datetime.utcnow() + timedelta(minutes=30),
        )

        assert await UserDAO(db_session).consume_reset_token("reset-inactive", "x") is None
        assert user.status == UserStatus.INACTIVE


class TestCounts:
    async def test_count_by_status(self, db_session, test_org, test_admin, test_employee):
        await UserFactory.create_invited(db_session, test_org)
        await UserFactory.create(db_session, org=test_org, status=UserStatus.INACTIVE)

        counts = await UserDAO(db_session).count_by_status(test_org.id)

        assert counts == {
            UserStatus.ACTIVE: 2,
            UserStatus.INVITED: 1,
            UserStatus.INACTIVE: 1,
        }

    async def test_count_by_status_empty_org(self, db_session):
        org = await OrganizationFactory.create(db_session)
        counts = await UserDAO(db_session).count_by_status(org.id)
        assert set(counts.values()) == {0}

    async def test_count_active_admins(self, db_session, test_org, test_admin):
        await UserFactory.create(
            db_session, org=test_org, role=UserRole.ORG_ADMIN, status=UserStatus.INACTIVE
        )
        assert await UserDAO(db_session).count_active_admins(test_org.id) == 1

    async def test_record_login(self, db_session, test_employee):
        assert test_employee.last_login_at is None
        user = await UserDAO(db_session).record_login(test_employee)
        assert user.last_login_at is not None
