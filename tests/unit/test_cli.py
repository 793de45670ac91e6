"""
Tests for the tasksetu-create-superadmin command.
"""

import pytest

from tasksetu import cli
from tasksetu.core.auth import verify_password
from tasksetu.dao.user import UserDAO
from tasksetu.models.user import UserRole, UserStatus
from tests.factories import UserFactory


class TestCreateSuperadmin:
    async def test_creates_new_account(self, db_session):
        user_id = await cli.create_superadmin(
            db_session, "Ops@TaskSetu.com", "Abc12345", first_name="Ops"
        )

        user = await UserDAO(db_session).get_by_id(user_id)
        assert user.email == "ops@tasksetu.com"
        assert user.role == UserRole.SUPERADMIN
        assert user.org_id is None
        assert user.status == UserStatus.ACTIVE
        assert user.email_verified is True
        assert verify_password("Abc12345", user.hashed_password) is True

    async def test_promotes_tenantless_user(self, db_session):
        solo = await UserFactory.create_individual(db_session, email="solo@example.com", email_verified=False)

        user_id = await cli.create_superadmin(db_session, "solo@example.com", "NewPass99")

        assert user_id == solo.id
        assert solo.role == UserRole.SUPERADMIN
        assert solo.email_verified is True
        assert verify_password("NewPass99", solo.hashed_password) is True

    async def test_refuses_tenant_member(self, db_session, test_employee):
        with pytest.raises(ValueError, match="member of an organization"):
            await cli.create_superadmin(db_session, test_employee.email, "Abc12345")

        assert test_employee.role == UserRole.EMPLOYEE


class TestCommandLine:
    @pytest.fixture
    def captured_runs(self, monkeypatch):
        runs = []

        async def fake_run(args):
            runs.append(args)
            return 42

        monkeypatch.setattr(cli, "_run", fake_run)
        return runs

    def test_password_flag(self, captured_runs, capsys):
        code = cli.create_superadmin_main(["--email", "ops@tasksetu.com", "--password", "Abc12345"])

        assert code == 0
        assert captured_runs[0].password == "Abc12345"
        assert "user id 42" in capsys.readouterr().out

    def test_prompts_when_password_omitted(self, captured_runs, monkeypatch):
        answers = iter(["Abc12345", "Abc12345"])
        monkeypatch.setattr(cli.getpass, "getpass", lambda prompt="": next(answers))

        code = cli.create_superadmin_main(["--email", "ops@tasksetu.com"])

        assert code == 0
        assert captured_runs[0].password == "Abc12345"

    def test_mismatched_prompt_aborts(self, captured_runs, monkeypatch, capsys):
        answers = iter(["Abc12345", "Abc12346"])
        monkeypatch.setattr(cli.getpass, "getpass", lambda prompt="": next(answers))

        code = cli.create_superadmin_main(["--email", "ops@tasksetu.com"])

        assert code == 1
        assert captured_runs == []
        assert "do not match" in capsys.readouterr().err

    @pytest.mark.parametrize("password", ["short1", "nodigitshere", "Abc12345" * 10])
    def test_weak_or_overlong_password_rejected(self, captured_runs, password):
        code = cli.create_superadmin_main(["--email", "ops@tasksetu.com", "--password", password])

        assert code == 1
        assert captured_runs == []
