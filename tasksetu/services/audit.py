"""
Audit logging service.

WHAT: Service layer for writing audit log entries with request context.

WHY: Security events (logins, invitations, activations, role and license
changes) are persisted for tenant admins and super admins. Audit writes
must never break the operation they describe.

HOW: Uses AuditLogDAO for persistence and the RequestContext ContextVar
for IP/user-agent capture. Each write runs in a SAVEPOINT so a failed
insert is rolled back on its own and the request transaction stays usable.
"""

import logging
from typing import Optional, Dict, Any

from sqlalchemy.ext.asyncio import AsyncSession

from tasksetu.dao.audit_log import AuditLogDAO
from tasksetu.models.audit_log import AuditLog, AuditAction
from tasksetu.models.user import User
from tasksetu.middleware.request_context import get_request_context


# Logger for audit service errors (not audit events themselves)
logger = logging.getLogger(__name__)


class AuditService:
    """
    Service for creating audit log entries.

    Example:
        audit = AuditService(db)
        await audit.log_login_success(user)
        await audit.log_membership_event(AuditAction.INVITE_SENT, actor, invitee)
    """

    def __init__(self, session: AsyncSession):
        """
        Args:
            session: Async database session for audit log persistence
        """
        self.dao = AuditLogDAO(session)
        self._session = session

    def _get_context(self) -> tuple[Optional[str], Optional[str]]:
        """Return (ip_address, user_agent) of the current request, if any."""
        ctx = get_request_context()
        if ctx:
            return ctx.ip_address, ctx.user_agent
        return None, None

    async def log_event(
        self,
        action: AuditAction,
        resource_type: str,
        actor_user_id: Optional[int] = None,
        resource_id: Optional[int] = None,
        org_id: Optional[int] = None,
        changes: Optional[Dict[str, Any]] = None,
        extra_data: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuditLog]:
        """
        Log a generic audit event.

        Args:
            action: Type of event (from AuditAction enum)
            resource_type: Category of affected resource
            actor_user_id: User who performed the action
            resource_id: Specific resource ID (optional)
            org_id: Organization context (optional)
            changes: Before/after values for mutations
            extra_data: Additional context (never tokens or passwords)

        Returns:
            Created AuditLog or None if logging failed

        Note:
            Never raises. Failures are logged to the application logger.
        """
        ip_address, user_agent = self._get_context()

        try:
            async with self._session.begin_nested():
                return await self.dao.create(
                    actor_user_id=actor_user_id,
                    action=action,
                    resource_type=resource_type,
                    resource_id=resource_id,
                    org_id=org_id,
                    changes=changes,
                    extra_data=extra_data,
                    ip_address=ip_address,
                    user_agent=user_agent,
                )
        except Exception as e:
            logger.error("Failed to create audit log for %s: %s", action.value, e, exc_info=True)
            return None

    # =========================================================================
    # Authentication Events
    # =========================================================================

    async def log_login_success(self, user: User) -> Optional[AuditLog]:
        return await self.log_event(
            action=AuditAction.LOGIN_SUCCESS,
            resource_type="auth",
            actor_user_id=user.id,
            resource_id=user.id,
            org_id=user.org_id,
        )

    async def log_login_failure(
        self,
        attempted_email: str,
        user: Optional[User] = None,
        reason: str = "invalid_credentials",
    ) -> Optional[AuditLog]:
        """
        Log a failed login attempt.

        WHY: The attempted email is kept so repeated failures against one
        account can be spotted, even when the account does not exist.
        """
        return await self.log_event(
            action=AuditAction.LOGIN_FAILURE,
            resource_type="auth",
            actor_user_id=user.id if user else None,
            org_id=user.org_id if user else None,
            extra_data={"attempted_email": attempted_email, "reason": reason},
        )

    async def log_password_event(self, action: AuditAction, user: User) -> Optional[AuditLog]:
        """Log a password reset request or completion for a user."""
        return await self.log_event(
            action=action,
            resource_type="user",
            actor_user_id=user.id,
            resource_id=user.id,
            org_id=user.org_id,
        )

    # =========================================================================
    # Membership Events
    # =========================================================================

    async def log_membership_event(
        self,
        action: AuditAction,
        actor: Optional[User],
        target: User,
        changes: Optional[Dict[str, Any]] = None,
        extra_data: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuditLog]:
        """
        Log a change to one membership (invite, accept, activate, role).

        Args:
            action: Membership action
            actor: User performing it (None when the member acts on themself
                through a token, e.g. accepting an invitation)
            target: Membership affected
            changes: Before/after values
            extra_data: Additional context
        """
        return await self.log_event(
            action=action,
            resource_type="user",
            actor_user_id=actor.id if actor else target.id,
            resource_id=target.id,
            org_id=target.org_id,
            changes=changes,
            extra_data={"email": target.email, **(extra_data or {})},
        )

    # =========================================================================
    # Organization Events
    # =========================================================================

    async def log_organization_event(
        self,
        action: AuditAction,
        actor: Optional[User],
        org_id: int,
        changes: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuditLog]:
        """Log a tenant-level change (creation, settings, status, license)."""
        return await self.log_event(
            action=action,
            resource_type="organization",
            actor_user_id=actor.id if actor else None,
            resource_id=org_id,
            org_id=org_id,
            changes=changes,
        )
