"""
Unit tests for AuthService.

WHY: Login decides who gets a session token; registration and the reset
flow must never reveal which emails are registered.
"""

from datetime import datetime, timedelta

import pytest

from tasksetu.core.auth import verify_password
from tasksetu.core.exceptions import (
    AccountInactiveError,
    AuthenticationError,
    AuthorizationError,
    EmailNotVerifiedError,
    InvalidTokenError,
    ResourceAlreadyExistsError,
    ResourceNotFoundError,
    SeatLimitExceeded,
)
from tasksetu.dao.audit_log import AuditLogDAO
from tasksetu.models.audit_log import AuditAction
from tasksetu.models.organization import OrganizationStatus
from tasksetu.models.user import UserRole, UserStatus
from tasksetu.services.auth_service import (
    FORGOT_PASSWORD_MESSAGE,
    INVALID_CREDENTIALS_MESSAGE,
    RESEND_VERIFICATION_MESSAGE,
    AuthService,
)
from tasksetu.services.email import EmailType, MockEmailProvider
from tests.factories import OrganizationFactory, UserFactory


@pytest.fixture
def service(db_session, test_settings, token_service, email_service):
    return AuthService(db_session, test_settings, token_service, email_service)


class TestLogin:
    async def test_login_success(self, service, token_service, test_admin):
        result = await service.login("ADMIN@acme.com", "Abc12345")

        assert result.user.id == test_admin.id
        assert result.token_type == "bearer"
        assert result.user.last_login_at is not None
        claims = token_service.verify_session_token(result.access_token)
        assert claims["user_id"] == test_admin.id
        assert claims["role"] == "org_admin"
        assert claims["org_id"] == test_admin.org_id

    async def test_wrong_password_and_unknown_email_look_alike(self, service, test_admin):
        with pytest.raises(AuthenticationError) as wrong:
            await service.login("admin@acme.com", "Wrong1234")
        with pytest.raises(AuthenticationError) as unknown:
            await service.login("ghost@acme.com", "Abc12345")

        assert wrong.value.message == unknown.value.message == INVALID_CREDENTIALS_MESSAGE
        assert wrong.value.status_code == 401

    async def test_failed_login_is_audited(self, service, db_session, test_admin):
        with pytest.raises(AuthenticationError):
            await service.login("admin@acme.com", "Wrong1234")

        logs = await AuditLogDAO(db_session).list_logs(action=AuditAction.LOGIN_FAILURE)
        assert logs[0].extra_data == {"attempted_email": "admin@acme.com", "reason": "invalid_credentials"}

    async def test_pending_invitation_cannot_log_in(self, service, db_session, test_org):
        invited = await UserFactory.create_invited(db_session, test_org)

        with pytest.raises(AuthenticationError):
            await service.login(invited.email, "")

    async def test_inactive_user_refused(self, service, db_session, test_org):
        user = await UserFactory.create(db_session, org=test_org, status=UserStatus.INACTIVE)

        with pytest.raises(AccountInactiveError):
            await service.login(user.email, "Abc12345")

    async def test_suspended_org_refused(self, service, db_session):
        org = await OrganizationFactory.create(db_session, status=OrganizationStatus.SUSPENDED)
        user = await UserFactory.create(db_session, org=org)

        with pytest.raises(AccountInactiveError) as exc_info:
            await service.login(user.email, "Abc12345")
        assert "suspended" in exc_info.value.message

    async def test_unverified_member_refused_when_org_requires_it(self, service, db_session, test_org):
        user = await UserFactory.create(db_session, org=test_org, email_verified=False)

        with pytest.raises(EmailNotVerifiedError):
            await service.login(user.email, "Abc12345")

    async def test_unverified_member_allowed_when_org_does_not_require_it(self, service, db_session):
        org = await OrganizationFactory.create(db_session, require_email_verification=False)
        user = await UserFactory.create(db_session, org=org, email_verified=False)

        result = await service.login(user.email, "Abc12345")
        assert result.user.id == user.id

    async def test_unverified_individual_refused(self, service, db_session):
        user = await UserFactory.create_individual(db_session, email_verified=False)

        with pytest.raises(EmailNotVerifiedError):
            await service.login(user.email, "Abc12345")

    async def test_superadmin_login(self, service, token_service, db_session):
        user = await UserFactory.create_superadmin(db_session, email_verified=False)

        result = await service.login(user.email, "Abc12345")
        assert token_service.verify_session_token(result.access_token)["org_id"] is None


class TestRegistration:
    async def test_register_organization(self, service, db_session):
        user, org = await service.register_organization(
            organization_name="Initech",
            email="Founder@Initech.com",
            password="Abc12345",
            first_name="Bill",
            last_name="Lumbergh",
        )

        assert org.slug == "initech"
        assert user.email == "founder@initech.com"
        assert user.role == UserRole.ORG_ADMIN
        assert user.org_id == org.id
        assert user.status == UserStatus.ACTIVE
        assert user.email_verified is False

        message = MockEmailProvider.last_email_to("founder@initech.com")
        assert message.email_type == EmailType.VERIFICATION
        assert user.email_verification_token in message.html_content

        logs = await AuditLogDAO(db_session).list_logs(org_id=org.id, action=AuditAction.ORG_CREATED)
        assert len(logs) == 1

    async def test_register_organization_duplicate_email(self, service, test_admin):
        with pytest.raises(ResourceAlreadyExistsError):
            await service.register_organization("Other", "admin@acme.com", "Abc12345", "A", "B")

    async def test_register_individual(self, service):
        user = await service.register_individual("solo@example.com", "Abc12345", "Solo", "Dev")

        assert user.role == UserRole.INDIVIDUAL
        assert user.org_id is None

    async def test_register_join(self, service, db_session):
        org = await OrganizationFactory.create(db_session, slug="open-co", allow_public_signup=True)

        user = await service.register_join("open-co", "joiner@open.co", "Abc12345", "Jo", "Iner")

        assert user.role == UserRole.EMPLOYEE
        assert user.org_id == org.id

    async def test_register_join_requires_public_signup(self, service, test_org):
        with pytest.raises(AuthorizationError):
            await service.register_join("acme-corp", "joiner@acme.com", "Abc12345", "Jo", "Iner")

    async def test_register_join_unknown_or_suspended(self, service, db_session):
        await OrganizationFactory.create(
            db_session, slug="closed-co", allow_public_signup=True, status=OrganizationStatus.SUSPENDED
        )
        with pytest.raises(ResourceNotFoundError):
            await service.register_join("closed-co", "j@closed.co", "Abc12345", "J", "K")
        with pytest.raises(ResourceNotFoundError):
            await service.register_join("nowhere", "j@nowhere.co", "Abc12345", "J", "K")

    async def test_register_join_respects_seats(self, service, db_session):
        org = await OrganizationFactory.create(db_session, slug="tiny-co", max_users=1, allow_public_signup=True)
        await UserFactory.create_admin(db_session, org=org)

        with pytest.raises(SeatLimitExceeded):
            await service.register_join("tiny-co", "j@tiny.co", "Abc12345", "J", "K")


class TestEmailVerification:
    async def test_verify_email_once(self, service):
        user = await service.register_individual("solo@example.com", "Abc12345", "Solo", "Dev")
        token = user.email_verification_token

        verified = await service.verify_email(token)
        assert verified.email_verified is True
        assert verified.email_verification_token is None

        with pytest.raises(InvalidTokenError):
            await service.verify_email(token)

    async def test_resend_verification_is_generic(self, service, test_admin):
        user = await service.register_individual("solo@example.com", "Abc12345", "Solo", "Dev")
        old_token = user.email_verification_token
        MockEmailProvider.clear_sent_emails()

        assert await service.resend_verification("solo@example.com") == RESEND_VERIFICATION_MESSAGE
        assert await service.resend_verification("ghost@example.com") == RESEND_VERIFICATION_MESSAGE
        assert await service.resend_verification(test_admin.email) == RESEND_VERIFICATION_MESSAGE

        assert len(MockEmailProvider.sent_emails) == 1
        assert user.email_verification_token != old_token


class TestPasswordReset:
    async def test_request_reset_sets_window(self, service, test_settings, test_employee):
        message = await service.request_password_reset(test_employee.email)

        assert message == FORGOT_PASSWORD_MESSAGE
        assert test_employee.password_reset_token
        window = test_employee.password_reset_expires_at - datetime.utcnow()
        assert timedelta(minutes=test_settings.PASSWORD_RESET_EXPIRE_MINUTES - 1) < window
        assert window <= timedelta(minutes=test_settings.PASSWORD_RESET_EXPIRE_MINUTES)

        email = MockEmailProvider.last_email_to(test_employee.email)
        assert email.email_type == EmailType.PASSWORD_RESET
        assert f"reset-password?token={test_employee.password_reset_token}" in email.html_content

    async def test_unknown_email_gets_same_message_and_no_mail(self, service):
        assert await service.request_password_reset("ghost@acme.com") == FORGOT_PASSWORD_MESSAGE
        assert MockEmailProvider.sent_emails == []

    async def test_new_request_replaces_token(self, service, test_employee):
        await service.request_password_reset(test_employee.email)
        first = test_employee.password_reset_token
        await service.request_password_reset(test_employee.email)

        with pytest.raises(InvalidTokenError):
            await service.validate_reset_token(first)

    async def test_reset_password(self, service, db_session, test_employee):
        await service.request_password_reset(test_employee.email)
        token = test_employee.password_reset_token

        assert (await service.validate_reset_token(token)).id == test_employee.id
        user = await service.reset_password(token, "NewPass99")

        assert verify_password("NewPass99", user.hashed_password)
        assert MockEmailProvider.last_email_to(user.email).email_type == EmailType.PASSWORD_CHANGED
        with pytest.raises(InvalidTokenError):
            await service.reset_password(token, "Again9999")

        logs = await AuditLogDAO(db_session).list_logs(action=AuditAction.PASSWORD_RESET_COMPLETE)
        assert logs[0].resource_id == user.id

    async def test_expired_reset_token(self, service, test_employee):
        await service.request_password_reset(test_employee.email)
        token = test_employee.password_reset_token
        await service.user_dao.update(
            test_employee.id, password_reset_expires_at=datetime.utcnow() - timedelta(seconds=1)
        )

        with pytest.raises(InvalidTokenError):
            await service.reset_password(token, "NewPass99")
        assert verify_password("Abc12345", test_employee.hashed_password)
