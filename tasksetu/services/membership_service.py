"""
Membership & invitation lifecycle.

WHAT: The invited -> active -> inactive state machine of tenant members:
invitations (single and batch), acceptance, resend, revoke, activation,
deactivation and role changes.

WHY: Every rule about who may join or leave a tenant is enforced here, in
one service, on top of the single membership store (UserDAO):
1. A pending invitation reserves a seat; nothing is created without one
2. Invite tokens are single-use and expire after INVITE_TOKEN_EXPIRE_DAYS
3. A tenant always keeps at least one active org admin
4. Email delivery failures are logged and never undo a state change

HOW: Token consumption is one conditional UPDATE (see UserDAO), batch
invitations run each entry in its own SAVEPOINT.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tasksetu.core.auth import hash_password, issue_invite_token
from tasksetu.core.config import Settings
from tasksetu.core.exceptions import (
    AppException,
    BusinessRuleViolation,
    InputError,
    InvalidStateTransitionError,
    InvalidTokenError,
    ResourceAlreadyExistsError,
    ResourceNotFoundError,
)
from tasksetu.dao.user import UserDAO
from tasksetu.models.audit_log import AuditAction
from tasksetu.models.organization import Organization
from tasksetu.models.user import User, UserRole, UserStatus
from tasksetu.services.audit import AuditService
from tasksetu.services.email import EmailService, deliver_quietly
from tasksetu.services.organization_service import OrganizationService


logger = logging.getLogger(__name__)

RoleInput = Union[str, UserRole, Sequence[Union[str, UserRole]]]


@dataclass
class InviteRequest:
    """One entry of a batch invitation."""

    email: str
    roles: RoleInput = UserRole.EMPLOYEE


@dataclass
class InviteError:
    """Why one entry of a batch invitation failed."""

    email: str
    error: str
    message: str


@dataclass
class BatchInviteResult:
    """Outcome of invite_many: successes and per-entry errors."""

    invited: List[User] = field(default_factory=list)
    errors: List[InviteError] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.invited)


def resolve_tenant_role(roles: RoleInput) -> UserRole:
    """
    Turn an API role value (single value, alias or list) into a tenant role.

    Lists resolve to their most privileged entry.

    Raises:
        InputError: If a role is unknown or is not grantable inside a tenant
    """
    try:
        if isinstance(roles, (str, UserRole)):
            role = UserRole.parse(roles)
        else:
            role = UserRole.highest(roles)
    except ValueError:
        raise InputError("Unknown role", field="role", value=str(roles))

    if not role.is_tenant_role:
        raise InputError(
            "Role must be one of: org_admin, employee",
            field="role",
            value=role.value,
        )
    return role


class MembershipService:
    """
    Membership lifecycle operations for one request.

    Example:
        service = MembershipService(db, settings, email_service)
        user = await service.invite("new@acme.com", org_id, ["employee"], invited_by=admin)
        user = await service.accept_invite(token, "Abc12345")
    """

    def __init__(self, session: AsyncSession, settings: Settings, email_service: EmailService):
        self.session = session
        self.settings = settings
        self.email_service = email_service
        self.user_dao = UserDAO(session)
        self.organizations = OrganizationService(session, settings)
        self.audit = AuditService(session)

    def _invite_expiry(self) -> datetime:
        return datetime.utcnow() + timedelta(days=self.settings.INVITE_TOKEN_EXPIRE_DAYS)

    async def get_member(self, user_id: int, org_id: int) -> User:
        """
        Load a member of one tenant.

        Raises:
            ResourceNotFoundError: If no such user exists in that tenant
        """
        user = await self.user_dao.get_by_id_and_org(user_id, org_id)
        if user is None:
            raise ResourceNotFoundError("User not found", user_id=user_id)
        return user

    async def list_members(self, org_id: int, status: Optional[UserStatus] = None) -> List[User]:
        return await self.user_dao.get_members(org_id, status=status, limit=1000)

    async def _send_invitation(self, user: User, org: Organization, inviter: User, token: str) -> bool:
        sent = await deliver_quietly(
            self.email_service.send_invitation_email,
            to_email=user.email,
            organization_name=org.name,
            inviter_name=inviter.display_name,
            invite_token=token,
            role=user.role.value,
        )
        if not sent:
            logger.warning("Invitation email not delivered user_id=%s org_id=%s", user.id, org.id)
        return sent

    # ========================================================================
    # Invitations
    # ========================================================================

    async def invite(
        self,
        email: str,
        org_id: int,
        roles: RoleInput,
        invited_by: User,
    ) -> User:
        """
        Invite one person into a tenant.

        Args:
            email: Invitee address (stored lowercase)
            org_id: Target tenant
            roles: Role value, legacy alias, or list (highest wins)
            invited_by: Acting org admin or super admin

        Returns:
            The pending User (status invited, no password)

        Raises:
            InputError: If the role is unknown or not a tenant role
            ResourceAlreadyExistsError: If the email already has a membership
            SeatLimitExceeded: If the tenant has no seat left
        """
        email = email.strip().lower()
        role = resolve_tenant_role(roles)
        org = await self.organizations.get_organization(org_id)

        existing = await self.user_dao.get_by_email(email)
        if existing is not None:
            if existing.org_id != org_id:
                raise ResourceAlreadyExistsError("A user with this email already exists", email=email)
            if existing.status == UserStatus.INVITED:
                raise ResourceAlreadyExistsError(
                    "An invitation is already pending for this email", email=email
                )
            if existing.status == UserStatus.INACTIVE:
                raise ResourceAlreadyExistsError(
                    "This user is deactivated in your organization. Reactivate them instead.",
                    email=email,
                )
            raise ResourceAlreadyExistsError(
                "User is already a member of this organization", email=email
            )

        await self.organizations.ensure_seat_available(org)

        now = datetime.utcnow()
        token = issue_invite_token()
        user = await self.user_dao.create(
            email=email,
            role=role,
            org_id=org.id,
            status=UserStatus.INVITED,
            hashed_password=None,
            email_verified=False,
            invite_token=token,
            invite_token_expires_at=self._invite_expiry(),
            invited_by_id=invited_by.id,
            invited_at=now,
        )
        logger.info("Invitation issued user_id=%s org_id=%s role=%s", user.id, org.id, role.value)

        await self.audit.log_membership_event(
            AuditAction.INVITE_SENT, invited_by, user, extra_data={"role": role.value}
        )
        await self._send_invitation(user, org, invited_by, token)
        return user

    async def invite_many(
        self,
        invites: Iterable[InviteRequest],
        org_id: int,
        invited_by: User,
    ) -> BatchInviteResult:
        """
        Invite several people; each entry succeeds or fails on its own.

        HOW: Every entry runs inside its own SAVEPOINT, so a failed entry
        leaves no row behind and earlier successes still count against the
        seat limit of later entries.
        """
        result = BatchInviteResult()

        for entry in invites:
            try:
                async with self.session.begin_nested():
                    user = await self.invite(entry.email, org_id, entry.roles, invited_by)
            except AppException as e:
                result.errors.append(
                    InviteError(email=entry.email, error=type(e).__name__, message=e.message)
                )
                continue
            except IntegrityError:
                # Concurrent invite for the same address won the unique index
                result.errors.append(
                    InviteError(
                        email=entry.email,
                        error=ResourceAlreadyExistsError.__name__,
                        message="A user with this email already exists",
                    )
                )
                continue
            result.invited.append(user)

        logger.info(
            "Batch invitation org_id=%s invited=%s failed=%s",
            org_id,
            result.success_count,
            len(result.errors),
        )
        return result

    async def resolve_invite_token(self, token: str) -> User:
        """
        Look up a pending invitation without consuming it.

        Raises:
            InvalidTokenError: If the token is unknown, used or expired
        """
        user = await self.user_dao.get_by_invite_token(token)
        if user is None:
            raise InvalidTokenError("Invalid or expired invitation")
        return user

    async def accept_invite(
        self,
        token: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> User:
        """
        Accept an invitation and activate the membership.

        HOW: A single conditional UPDATE consumes the token. A second
        acceptance of the same token, or one after expiry, matches no row.

        Raises:
            InvalidTokenError: If the token is unknown, used or expired
        """
        user = await self.user_dao.consume_invite_token(
            token,
            hash_password(password),
            first_name=first_name,
            last_name=last_name,
        )
        if user is None:
            raise InvalidTokenError("Invalid or expired invitation")

        logger.info("Invitation accepted user_id=%s org_id=%s", user.id, user.org_id)
        await self.audit.log_membership_event(AuditAction.INVITE_ACCEPTED, None, user)
        await deliver_quietly(
            self.email_service.send_welcome_email,
            to_email=user.email,
            user_name=user.display_name,
            organization_name=user.organization.name if user.organization else None,
        )
        return user

    async def resend_invite(self, user_id: int, org_id: int, actor: User) -> User:
        """
        Rotate the invite token and email the new link.

        The previous token stops resolving immediately.

        Raises:
            ResourceNotFoundError: If the user is not in the tenant
            InvalidStateTransitionError: If the invitation was already accepted
        """
        user = await self.get_member(user_id, org_id)
        if user.status != UserStatus.INVITED:
            raise InvalidStateTransitionError(
                "Only pending invitations can be resent",
                status=user.status.value,
            )

        token = issue_invite_token()
        user = await self.user_dao.update(
            user.id,
            invite_token=token,
            invite_token_expires_at=self._invite_expiry(),
            invited_at=datetime.utcnow(),
        )
        logger.info("Invitation resent user_id=%s org_id=%s", user.id, org_id)

        await self.audit.log_membership_event(AuditAction.INVITE_RESENT, actor, user)
        org = await self.organizations.get_organization(org_id)
        await self._send_invitation(user, org, actor, token)
        return user

    async def revoke_invite(self, user_id: int, org_id: int, actor: User) -> None:
        """
        Delete a pending invitation, releasing its seat.

        Raises:
            ResourceNotFoundError: If the user is not in the tenant
            InvalidStateTransitionError: If the invitation was already accepted
        """
        user = await self.get_member(user_id, org_id)
        if user.status != UserStatus.INVITED:
            raise InvalidStateTransitionError(
                "Only pending invitations can be revoked",
                status=user.status.value,
            )

        await self.audit.log_membership_event(AuditAction.INVITE_REVOKED, actor, user)
        await self.user_dao.delete(user.id)
        logger.info("Invitation revoked user_id=%s org_id=%s", user_id, org_id)

    # ========================================================================
    # Activation
    # ========================================================================

    async def _ensure_admin_remains(self, user: User, action: str) -> None:
        if user.role != UserRole.ORG_ADMIN or user.status != UserStatus.ACTIVE:
            return
        if await self.user_dao.count_active_admins(user.org_id) <= 1:
            raise BusinessRuleViolation(
                f"Cannot {action} the last active organization admin",
                user_id=user.id,
            )

    async def deactivate(self, user_id: int, org_id: int, actor: User) -> User:
        """
        Deactivate a member. Their session tokens stop working on the next
        request because authorization re-reads the user.

        Raises:
            BusinessRuleViolation: Self-deactivation, or last active org admin
            InvalidStateTransitionError: If the user is invited or already inactive
        """
        user = await self.get_member(user_id, org_id)
        if user.id == actor.id:
            raise BusinessRuleViolation("You cannot deactivate your own account")
        if user.status == UserStatus.INVITED:
            raise InvalidStateTransitionError(
                "Pending invitations cannot be deactivated. Revoke the invitation instead.",
                status=user.status.value,
            )
        if user.status == UserStatus.INACTIVE:
            raise InvalidStateTransitionError("User is already inactive", status=user.status.value)

        await self._ensure_admin_remains(user, "deactivate")

        user = await self.user_dao.update(user.id, status=UserStatus.INACTIVE)
        logger.info("User deactivated user_id=%s org_id=%s by=%s", user.id, org_id, actor.id)
        await self.audit.log_membership_event(
            AuditAction.ACCOUNT_DEACTIVATED,
            actor,
            user,
            changes={"status": {"before": UserStatus.ACTIVE.value, "after": UserStatus.INACTIVE.value}},
        )
        return user

    async def reactivate(self, user_id: int, org_id: int, actor: User) -> User:
        """
        Reactivate a deactivated member.

        Raises:
            InvalidStateTransitionError: If the user is invited or already active
            SeatLimitExceeded: If the tenant has no seat left
        """
        user = await self.get_member(user_id, org_id)
        if user.status == UserStatus.INVITED:
            raise InvalidStateTransitionError(
                "Pending invitations become active when accepted",
                status=user.status.value,
            )
        if user.status == UserStatus.ACTIVE:
            raise InvalidStateTransitionError("User is already active", status=user.status.value)

        org = await self.organizations.get_organization(org_id)
        await self.organizations.ensure_seat_available(org)

        user = await self.user_dao.update(user.id, status=UserStatus.ACTIVE)
        logger.info("User reactivated user_id=%s org_id=%s by=%s", user.id, org_id, actor.id)
        await self.audit.log_membership_event(
            AuditAction.ACCOUNT_ACTIVATED,
            actor,
            user,
            changes={"status": {"before": UserStatus.INACTIVE.value, "after": UserStatus.ACTIVE.value}},
        )
        return user

    # ========================================================================
    # Roles
    # ========================================================================

    async def change_role(self, user_id: int, org_id: int, new_role: RoleInput, actor: User) -> User:
        """
        Change a member's tenant role.

        Raises:
            InputError: If the role is not a tenant role
            BusinessRuleViolation: Own role, or demoting the last active org admin
        """
        role = resolve_tenant_role(new_role)
        user = await self.get_member(user_id, org_id)
        if user.id == actor.id:
            raise BusinessRuleViolation("You cannot change your own role")
        if user.role == role:
            return user

        if role != UserRole.ORG_ADMIN:
            await self._ensure_admin_remains(user, "demote")

        before = user.role.value
        user = await self.user_dao.update(user.id, role=role)
        logger.info("Role changed user_id=%s org_id=%s role=%s", user.id, org_id, role.value)
        await self.audit.log_membership_event(
            AuditAction.ROLE_CHANGE,
            actor,
            user,
            changes={"role": {"before": before, "after": role.value}},
        )
        return user
