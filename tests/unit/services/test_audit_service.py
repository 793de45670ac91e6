"""
Unit tests for AuditService.

WHY: Audit entries must capture who did what from where, and a failed
audit write must never break the operation it describes.
"""

from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from tasksetu.dao.audit_log import AuditLogDAO
from tasksetu.middleware.request_context import RequestContext, _request_context
from tasksetu.models.audit_log import AuditAction
from tasksetu.services.audit import AuditService
from tests.factories import UserFactory


class TestAuditService:
    async def test_login_success_entry(self, db_session, test_admin):
        log = await AuditService(db_session).log_login_success(test_admin)

        assert log.action == AuditAction.LOGIN_SUCCESS
        assert log.actor_user_id == test_admin.id
        assert log.org_id == test_admin.org_id
        assert log.ip_address is None

    async def test_request_context_is_captured(self, db_session, test_admin):
        ctx = RequestContext(
            request_id="req-1",
            ip_address="203.0.113.9",
            user_agent="pytest",
            path="/api/auth/login",
            method="POST",
        )
        token = _request_context.set(ctx)
        try:
            log = await AuditService(db_session).log_login_success(test_admin)
        finally:
            _request_context.reset(token)

        assert log.ip_address == "203.0.113.9"
        assert log.user_agent == "pytest"

    async def test_membership_event_defaults_actor_to_target(self, db_session, test_org):
        member = await UserFactory.create(db_session, org=test_org)

        log = await AuditService(db_session).log_membership_event(AuditAction.INVITE_ACCEPTED, None, member)

        assert log.actor_user_id == member.id
        assert log.resource_id == member.id
        assert log.extra_data == {"email": member.email}

        history = await AuditLogDAO(db_session).list_logs(resource_type="user", resource_id=member.id)
        assert [entry.action for entry in history] == [AuditAction.INVITE_ACCEPTED]

    async def test_failed_write_returns_none(self, db_session, test_admin):
        service = AuditService(db_session)

        with patch.object(service.dao, "create", side_effect=OperationalError("INSERT", {}, Exception("disk full"))):
            assert await service.log_login_success(test_admin) is None

        # The session is still usable afterwards
        assert await service.log_login_success(test_admin) is not None
