"""
Authentication and self-service account flows.

WHAT: Login, self-registration (organization, individual, public join),
email verification, and the password reset flow.

WHY: These flows are reachable without a session, so they share two rules:
1. Responses never reveal whether an email is registered where that would
   allow enumeration (forgot-password, resend-verification)
2. Reset and verification tokens are consumed by one conditional UPDATE
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tasksetu.core.auth import (
    TokenService,
    hash_password,
    issue_email_verification_token,
    issue_reset_token,
    verify_password,
)
from tasksetu.core.config import Settings
from tasksetu.core.exceptions import (
    AccountInactiveError,
    AuthenticationError,
    AuthorizationError,
    EmailNotVerifiedError,
    InvalidTokenError,
    ResourceAlreadyExistsError,
    ResourceNotFoundError,
)
from tasksetu.dao.organization import OrganizationDAO
from tasksetu.dao.user import UserDAO
from tasksetu.middleware.request_context import get_request_context
from tasksetu.models.audit_log import AuditAction
from tasksetu.models.organization import Organization, OrganizationType
from tasksetu.models.user import User, UserRole, UserStatus
from tasksetu.services.audit import AuditService
from tasksetu.services.email import EmailService, deliver_quietly
from tasksetu.services.organization_service import OrganizationService


logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"
FORGOT_PASSWORD_MESSAGE = (
    "If an account exists with this email, you will receive a password reset link."
)
RESEND_VERIFICATION_MESSAGE = (
    "If an unverified account exists with this email, a new verification link has been sent."
)


@dataclass
class LoginResult:
    """A freshly authenticated user and their session token."""

    user: User
    access_token: str
    expires_in: int
    token_type: str = "bearer"


def requires_email_verification(user: User) -> bool:
    """
    Whether an unverified user is refused at login.

    Individual users always verify; tenant members follow their
    organization's require_email_verification setting. Invited users
    verify implicitly by accepting the emailed invitation.
    """
    if user.role == UserRole.SUPERADMIN:
        return False
    if user.role == UserRole.INDIVIDUAL:
        return True
    return bool(user.organization and user.organization.require_email_verification)


class AuthService:
    """
    Unauthenticated account flows for one request.

    Example:
        service = AuthService(db, settings, token_service, email_service)
        result = await service.login("admin@acme.com", "Abc12345")
    """

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings,
        token_service: TokenService,
        email_service: EmailService,
    ):
        self.session = session
        self.settings = settings
        self.token_service = token_service
        self.email_service = email_service
        self.user_dao = UserDAO(session)
        self.org_dao = OrganizationDAO(session)
        self.organizations = OrganizationService(session, settings)
        self.audit = AuditService(session)

    # ========================================================================
    # Sessions
    # ========================================================================

    def issue_session(self, user: User) -> LoginResult:
        token = self.token_service.issue_session_token(
            user_id=user.id,
            email=user.email,
            role=user.role.value,
            org_id=user.org_id,
        )
        return LoginResult(user=user, access_token=token, expires_in=self.token_service.expires_in)

    async def login(self, email: str, password: str) -> LoginResult:
        """
        Authenticate with email and password.

        Raises:
            AuthenticationError: Unknown email, wrong password, or a pending
                invitation (same generic message for all three)
            AccountInactiveError: Deactivated user or suspended organization
            EmailNotVerifiedError: Verification still required
        """
        user = await self.user_dao.get_by_email(email)

        if user is None or not verify_password(password, user.hashed_password):
            await self.audit.log_login_failure(email.strip().lower(), user)
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

        if user.status != UserStatus.ACTIVE:
            await self.audit.log_login_failure(user.email, user, reason="inactive")
            raise AccountInactiveError(
                "Your account is inactive. Contact your organization admin."
            )

        if user.organization is not None and not user.organization.is_active:
            await self.audit.log_login_failure(user.email, user, reason="organization_suspended")
            raise AccountInactiveError("Your organization has been suspended")

        if not user.email_verified and requires_email_verification(user):
            await self.audit.log_login_failure(user.email, user, reason="email_not_verified")
            raise EmailNotVerifiedError()

        user = await self.user_dao.record_login(user)
        await self.audit.log_login_success(user)
        logger.info("Login user_id=%s org_id=%s", user.id, user.org_id)
        return self.issue_session(user)

    # ========================================================================
    # Registration
    # ========================================================================

    async def _ensure_email_free(self, email: str) -> None:
        if await self.user_dao.email_exists(email):
            raise ResourceAlreadyExistsError(
                "A user with this email already exists",
                resource_type="User",
                email=email,
            )

    async def _create_self_registered_user(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        role: UserRole,
        org: Optional[Organization],
    ) -> User:
        token = issue_email_verification_token()
        user = await self.user_dao.create(
            email=email.strip().lower(),
            hashed_password=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            role=role,
            org_id=org.id if org else None,
            status=UserStatus.ACTIVE,
            email_verified=False,
            email_verification_token=token,
            email_verification_expires_at=datetime.utcnow()
            + timedelta(hours=self.settings.EMAIL_VERIFICATION_EXPIRE_HOURS),
        )
        await self.audit.log_membership_event(
            AuditAction.ACCOUNT_CREATED, None, user, extra_data={"role": role.value}
        )
        await deliver_quietly(
            self.email_service.send_verification_email,
            to_email=user.email,
            user_name=user.display_name,
            verification_token=token,
        )
        return user

    async def register_organization(
        self,
        organization_name: str,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        slug: Optional[str] = None,
        org_type: OrganizationType = OrganizationType.COMPANY,
    ) -> tuple[User, Organization]:
        """
        Create a tenant with its first org admin.

        Raises:
            ResourceAlreadyExistsError: Email or slug already taken
            InputError: Malformed slug
        """
        await self._ensure_email_free(email)
        org = await self.organizations.create_organization(
            organization_name, slug=slug, org_type=org_type
        )
        user = await self._create_self_registered_user(
            email, password, first_name, last_name, UserRole.ORG_ADMIN, org
        )
        await self.audit.log_organization_event(AuditAction.ORG_CREATED, user, org.id)
        logger.info("Organization registered org_id=%s admin_id=%s", org.id, user.id)
        return user, org

    async def register_individual(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
    ) -> User:
        """Create a tenant-less individual account."""
        await self._ensure_email_free(email)
        user = await self._create_self_registered_user(
            email, password, first_name, last_name, UserRole.INDIVIDUAL, None
        )
        logger.info("Individual registered user_id=%s", user.id)
        return user

    async def register_join(
        self,
        slug: str,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
    ) -> User:
        """
        Self-signup into a tenant that allows public signup.

        Raises:
            ResourceNotFoundError: Unknown or suspended organization
            AuthorizationError: The organization does not allow public signup
            SeatLimitExceeded: No seat left
        """
        org = await self.org_dao.get_by_slug(slug)
        if org is None or not org.is_active:
            raise ResourceNotFoundError("Organization not found", slug=slug)
        if not org.allow_public_signup:
            raise AuthorizationError("This organization does not accept public signups")

        await self._ensure_email_free(email)
        await self.organizations.ensure_seat_available(org)

        user = await self._create_self_registered_user(
            email, password, first_name, last_name, UserRole.EMPLOYEE, org
        )
        logger.info("Public signup user_id=%s org_id=%s", user.id, org.id)
        return user

    # ========================================================================
    # Email verification
    # ========================================================================

    async def verify_email(self, token: str) -> User:
        """
        Raises:
            InvalidTokenError: If the token is unknown, used or expired
        """
        user = await self.user_dao.consume_verification_token(token)
        if user is None:
            raise InvalidTokenError("Invalid or expired verification token")

        await self.audit.log_membership_event(AuditAction.EMAIL_VERIFIED, None, user)
        await deliver_quietly(
            self.email_service.send_welcome_email,
            to_email=user.email,
            user_name=user.display_name,
            organization_name=user.organization.name if user.organization else None,
        )
        logger.info("Email verified user_id=%s", user.id)
        return user

    async def resend_verification(self, email: str) -> str:
        """
        Issue a fresh verification link. Always returns the same message.
        """
        user = await self.user_dao.get_by_email(email)
        if user is not None and user.status == UserStatus.ACTIVE and not user.email_verified:
            token = issue_email_verification_token()
            await self.user_dao.update(
                user.id,
                email_verification_token=token,
                email_verification_expires_at=datetime.utcnow()
                + timedelta(hours=self.settings.EMAIL_VERIFICATION_EXPIRE_HOURS),
            )
            await deliver_quietly(
                self.email_service.send_verification_email,
                to_email=user.email,
                user_name=user.display_name,
                verification_token=token,
            )
        return RESEND_VERIFICATION_MESSAGE

    # ========================================================================
    # Password reset
    # ========================================================================

    async def request_password_reset(self, email: str) -> str:
        """
        Start a password reset. Always returns the same message.

        Only active users get a token (valid PASSWORD_RESET_EXPIRE_MINUTES)
        and an email. A new request replaces any earlier token.
        """
        user = await self.user_dao.get_by_email(email)
        if user is None or user.status != UserStatus.ACTIVE:
            logger.info("Password reset requested for an unknown or inactive account")
            return FORGOT_PASSWORD_MESSAGE

        token = issue_reset_token()
        user = await self.user_dao.update(
            user.id,
            password_reset_token=token,
            password_reset_expires_at=datetime.utcnow()
            + timedelta(minutes=self.settings.PASSWORD_RESET_EXPIRE_MINUTES),
        )
        await self.audit.log_password_event(AuditAction.PASSWORD_RESET_REQUEST, user)
        await deliver_quietly(
            self.email_service.send_password_reset_email,
            to_email=user.email,
            user_name=user.display_name,
            reset_token=token,
        )
        logger.info("Password reset issued user_id=%s", user.id)
        return FORGOT_PASSWORD_MESSAGE

    async def validate_reset_token(self, token: str) -> User:
        """
        Check a reset token without consuming it.

        Raises:
            InvalidTokenError: If the token is unknown, used or expired
        """
        user = await self.user_dao.get_by_reset_token(token)
        if user is None:
            raise InvalidTokenError("Invalid or expired reset token")
        return user

    async def reset_password(self, token: str, new_password: str) -> User:
        """
        Set a new password with a reset token.

        Raises:
            InvalidTokenError: If the token is unknown, used or expired;
                the password is left unchanged
        """
        user = await self.user_dao.consume_reset_token(token, hash_password(new_password))
        if user is None:
            raise InvalidTokenError("Invalid or expired reset token")

        await self.audit.log_password_event(AuditAction.PASSWORD_RESET_COMPLETE, user)
        ctx = get_request_context()
        await deliver_quietly(
            self.email_service.send_password_changed_email,
            to_email=user.email,
            user_name=user.display_name,
            ip_address=ctx.ip_address if ctx else None,
        )
        logger.info("Password reset completed user_id=%s", user.id)
        return user
