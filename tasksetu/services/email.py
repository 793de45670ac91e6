"""
Email service for sending transactional emails.

WHAT: A provider-agnostic interface for the emails the membership
lifecycle sends: invitations, email verification, password reset,
password changed and welcome notices.

WHY: Invitations and resets only work if the token reaches the user's
mailbox, but a provider outage must never undo the state change that
produced the token. Callers get an EmailResult back and decide what to log.

HOW: Resend HTTP API in production (httpx), MockEmailProvider when no API
key is configured (development, tests). Bodies are rendered by
EmailTemplateService.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, List

import httpx

from tasksetu.core.config import Settings
from tasksetu.services.email_template_service import EmailTemplateService

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


# ============================================================================
# Email Types and Messages
# ============================================================================


class EmailType(str, Enum):
    """Types of transactional emails."""

    INVITATION = "invitation"
    VERIFICATION = "verification"
    PASSWORD_RESET = "password_reset"
    PASSWORD_CHANGED = "password_changed"
    WELCOME = "welcome"


@dataclass
class EmailMessage:
    """An email ready to hand to a provider."""

    to_email: str
    subject: str
    html_content: str
    text_content: Optional[str] = None
    from_email: Optional[str] = None
    reply_to: Optional[str] = None
    email_type: EmailType = EmailType.VERIFICATION
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class EmailResult:
    """
    Result of an email send operation.

    Attributes:
        success: Whether the provider accepted the message
        message_id: Provider message ID for tracking
        error: Error message if send failed
        provider: Which provider was used
    """

    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None
    provider: Optional[str] = None


# ============================================================================
# Email Provider Interface
# ============================================================================


class EmailProvider(ABC):
    """Abstract base class for email providers."""

    name: str = "base"

    @abstractmethod
    async def send(self, message: EmailMessage) -> EmailResult:
        """
        Send an email message.

        Implementations return a failed EmailResult instead of raising.
        """

    @abstractmethod
    def is_configured(self) -> bool:
        """True if credentials are present."""


class ResendProvider(EmailProvider):
    """Resend email provider (https://resend.com)."""

    name = "resend"

    def __init__(self, api_key: Optional[str], default_from: str, timeout: float = 30.0):
        """
        Args:
            api_key: Resend API key
            default_from: Sender used when a message has none
            timeout: HTTP timeout in seconds
        """
        self._api_key = api_key
        self._default_from = default_from
        self._timeout = timeout

    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def send(self, message: EmailMessage) -> EmailResult:
        """
        Send email via the Resend REST API.

        Returns:
            EmailResult with send status
        """
        if not self.is_configured():
            return EmailResult(
                success=False,
                error="Resend API key not configured",
                provider=self.name,
            )

        payload = {
            "from": message.from_email or self._default_from,
            "to": [message.to_email],
            "subject": message.subject,
            "html": message.html_content,
        }
        if message.text_content:
            payload["text"] = message.text_content
        if message.reply_to:
            payload["reply_to"] = message.reply_to

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(
                    RESEND_API_URL,
                    headers={"Authorization": f"Bearer {self._api_key}"},
                    json=payload,
                )
        except httpx.HTTPError as e:
            logger.error("Resend send error: %s", e)
            return EmailResult(success=False, error=str(e), provider=self.name)

        if response.status_code in (200, 201):
            return EmailResult(
                success=True,
                message_id=response.json().get("id"),
                provider=self.name,
            )

        return EmailResult(
            success=False,
            error=f"Resend API error: {response.status_code} - {response.text}",
            provider=self.name,
        )


class MockEmailProvider(EmailProvider):
    """
    Mock email provider for testing and development.

    Logs emails instead of sending them and keeps them in a class-level
    list so tests can read the links they carry.
    """

    name = "mock"

    sent_emails: List[EmailMessage] = []

    def is_configured(self) -> bool:
        return True

    async def send(self, message: EmailMessage) -> EmailResult:
        logger.info(
            "[MOCK EMAIL] type=%s to=%s subject=%s",
            message.email_type.value,
            message.to_email,
            message.subject,
        )
        MockEmailProvider.sent_emails.append(message)

        return EmailResult(
            success=True,
            message_id=f"mock-{datetime.utcnow().timestamp()}",
            provider=self.name,
        )

    @classmethod
    def clear_sent_emails(cls):
        """Clear sent emails list (for test cleanup)."""
        cls.sent_emails = []

    @classmethod
    def last_email_to(cls, email: str) -> Optional[EmailMessage]:
        """Most recent message sent to an address, if any."""
        for message in reversed(cls.sent_emails):
            if message.to_email == email:
                return message
        return None


# ============================================================================
# Email Service
# ============================================================================


class EmailService:
    """
    High-level email service for transactional emails.

    WHY: Membership services only know about users, organizations and
    tokens. Link building, rendering and provider choice happen here.
    """

    def __init__(
        self,
        provider: EmailProvider,
        template_service: EmailTemplateService,
        frontend_url: str,
        invite_expires_in: str = "7 days",
        reset_expires_in: str = "30 minutes",
        verification_expires_in: str = "24 hours",
    ):
        self._provider = provider
        self._template_service = template_service
        self._frontend_url = frontend_url.rstrip("/")
        self._invite_expires_in = invite_expires_in
        self._reset_expires_in = reset_expires_in
        self._verification_expires_in = verification_expires_in

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailService":
        """
        Build the service for the configured environment.

        Uses Resend when RESEND_API_KEY is set, the mock provider otherwise.
        """
        if settings.RESEND_API_KEY:
            provider: EmailProvider = ResendProvider(settings.RESEND_API_KEY, settings.EMAIL_FROM)
        else:
            logger.warning("No email provider configured, using mock provider")
            provider = MockEmailProvider()

        return cls(
            provider=provider,
            template_service=EmailTemplateService(frontend_url=settings.FRONTEND_URL),
            frontend_url=settings.FRONTEND_URL,
            invite_expires_in=f"{settings.INVITE_TOKEN_EXPIRE_DAYS} days",
            reset_expires_in=f"{settings.PASSWORD_RESET_EXPIRE_MINUTES} minutes",
            verification_expires_in=f"{settings.EMAIL_VERIFICATION_EXPIRE_HOURS} hours",
        )

    @property
    def provider(self) -> EmailProvider:
        return self._provider

    def invite_url(self, token: str) -> str:
        return f"{self._frontend_url}/accept-invite?token={token}"

    def reset_url(self, token: str) -> str:
        return f"{self._frontend_url}/reset-password?token={token}"

    def verification_url(self, token: str) -> str:
        return f"{self._frontend_url}/verify-email?token={token}"

    async def send_email(self, message: EmailMessage) -> EmailResult:
        """
        Send an email message through the configured provider.

        Returns:
            EmailResult with send status (failures are logged here)
        """
        result = await self._provider.send(message)

        if result.success:
            logger.info(
                "Sent %s email, message_id=%s",
                message.email_type.value,
                result.message_id,
            )
        else:
            logger.error(
                "Email send failed for %s email: %s",
                message.email_type.value,
                result.error,
            )

        return result

    async def send_invitation_email(
        self,
        to_email: str,
        organization_name: str,
        inviter_name: str,
        invite_token: str,
        role: str,
    ) -> EmailResult:
        """
        Send the invitation link for a pending membership.

        Args:
            to_email: Invitee address
            organization_name: Tenant display name
            inviter_name: Admin who sent the invitation
            invite_token: Opaque invite token
            role: Role the invitee will hold

        Returns:
            EmailResult with send status

        Raises:
            EmailServiceError: If the template cannot be rendered
        """
        subject, html_content, text_content = self._template_service.render_invitation_email(
            organization_name=organization_name,
            inviter_name=inviter_name,
            accept_url=self.invite_url(invite_token),
            role=role,
            expires_in=self._invite_expires_in,
        )

        return await self.send_email(
            EmailMessage(
                to_email=to_email,
                subject=subject,
                html_content=html_content,
                text_content=text_content,
                email_type=EmailType.INVITATION,
                metadata={"organization": organization_name},
            )
        )

    async def send_verification_email(
        self,
        to_email: str,
        user_name: str,
        verification_token: str,
    ) -> EmailResult:
        """Send the email address verification link."""
        subject, html_content, text_content = self._template_service.render_verification_email(
            user_name=user_name,
            verification_url=self.verification_url(verification_token),
            expires_in=self._verification_expires_in,
        )

        return await self.send_email(
            EmailMessage(
                to_email=to_email,
                subject=subject,
                html_content=html_content,
                text_content=text_content,
                email_type=EmailType.VERIFICATION,
            )
        )

    async def send_password_reset_email(
        self,
        to_email: str,
        user_name: str,
        reset_token: str,
    ) -> EmailResult:
        """Send the password reset link."""
        subject, html_content, text_content = self._template_service.render_password_reset_email(
            user_name=user_name,
            reset_url=self.reset_url(reset_token),
            expires_in=self._reset_expires_in,
        )

        return await self.send_email(
            EmailMessage(
                to_email=to_email,
                subject=subject,
                html_content=html_content,
                text_content=text_content,
                email_type=EmailType.PASSWORD_RESET,
            )
        )

    async def send_password_changed_email(
        self,
        to_email: str,
        user_name: str,
        ip_address: Optional[str] = None,
    ) -> EmailResult:
        """Notify a user that their password was changed."""
        subject, html_content, text_content = self._template_service.render_password_changed_email(
            user_name=user_name,
            ip_address=ip_address,
        )

        return await self.send_email(
            EmailMessage(
                to_email=to_email,
                subject=subject,
                html_content=html_content,
                text_content=text_content,
                email_type=EmailType.PASSWORD_CHANGED,
            )
        )

    async def send_welcome_email(
        self,
        to_email: str,
        user_name: str,
        organization_name: Optional[str] = None,
    ) -> EmailResult:
        """Welcome a member whose account just became active."""
        subject, html_content, text_content = self._template_service.render_welcome_email(
            user_name=user_name,
            organization_name=organization_name,
        )

        return await self.send_email(
            EmailMessage(
                to_email=to_email,
                subject=subject,
                html_content=html_content,
                text_content=text_content,
                email_type=EmailType.WELCOME,
            )
        )


async def deliver_quietly(send, *args, **kwargs) -> bool:
    """
    Await an EmailService.send_* call and report success as a bool.

    WHY: Invitation, reset and verification state is already written when
    the email goes out. A rendering or provider failure is logged here and
    never propagates into the membership operation.

    Example:
        sent = await deliver_quietly(email_service.send_invitation_email, ...)
    """
    try:
        result = await send(*args, **kwargs)
    except Exception as e:
        logger.error("Email could not be sent: %s", e, exc_info=True)
        return False
    return result.success
