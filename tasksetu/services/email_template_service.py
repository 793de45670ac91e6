"""
Email Template Service for rendering Jinja2 email templates.

WHAT: Loads and renders the transactional email templates shipped in
tasksetu/templates/email.

WHY: Invitation, verification and password emails share one branded
layout (base.html). Keeping the markup in templates keeps it out of the
membership services.

HOW: Jinja2 Environment with FileSystemLoader and HTML autoescaping. Each
render_* method returns (subject, html, text) so every email also has a
plain text part.
"""

import logging
from pathlib import Path
from typing import Dict, Any, Optional
from datetime import datetime

from jinja2 import Environment, FileSystemLoader, select_autoescape, TemplateNotFound

from tasksetu.core.exceptions import EmailServiceError


logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "email"
PLATFORM_NAME = "TaskSetu"


class EmailTemplateService:
    """
    Service for rendering email templates.

    Example:
        template_service = EmailTemplateService(frontend_url="https://app.tasksetu.com")
        subject, html, text = template_service.render_invitation_email(
            organization_name="Acme",
            inviter_name="Asha Rao",
            accept_url="https://.../accept-invite?token=...",
            role="employee",
        )
    """

    def __init__(self, frontend_url: str, template_dir: Optional[Path] = None):
        """
        Args:
            frontend_url: Base URL of the web client, used for footer links
            template_dir: Templates directory (defaults to the packaged one)
        """
        self._frontend_url = frontend_url.rstrip("/")
        self._template_dir = template_dir or DEFAULT_TEMPLATE_DIR
        self._env = Environment(
            loader=FileSystemLoader(str(self._template_dir)),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def _get_base_context(self) -> Dict[str, Any]:
        """Variables every template can use (footer, branding)."""
        return {
            "year": datetime.utcnow().year,
            "frontend_url": self._frontend_url,
            "platform_name": PLATFORM_NAME,
        }

    def render_template(self, template_name: str, context: Dict[str, Any]) -> str:
        """
        Render a template with given context.

        Args:
            template_name: Name of template file (e.g., "invitation.html")
            context: Template variables

        Returns:
            Rendered HTML string

        Raises:
            EmailServiceError: If template not found or render fails
        """
        try:
            template = self._env.get_template(template_name)
            return template.render(**{**self._get_base_context(), **context})
        except TemplateNotFound:
            logger.error("Email template not found: %s", template_name)
            raise EmailServiceError(
                message=f"Email template not found: {template_name}",
                template=template_name,
            )
        except Exception as e:
            logger.error("Error rendering template %s: %s", template_name, e)
            raise EmailServiceError(
                message="Failed to render email template",
                template=template_name,
                error=str(e),
            )

    def render_invitation_email(
        self,
        organization_name: str,
        inviter_name: str,
        accept_url: str,
        role: str,
        expires_in: str = "7 days",
    ) -> tuple[str, str, str]:
        """
        Render the invitation to join an organization.

        Args:
            organization_name: Tenant display name
            inviter_name: Name of the admin who sent the invitation
            accept_url: Link carrying the invite token
            role: Role the invitee will hold
            expires_in: Human readable validity window

        Returns:
            Tuple of (subject, html_content, text_content)
        """
        context = {
            "organization_name": organization_name,
            "inviter_name": inviter_name,
            "accept_url": accept_url,
            "role_label": role.replace("_", " "),
            "expires_in": expires_in,
        }

        html = self.render_template("invitation.html", context)
        text = self._generate_text_version(
            f"{inviter_name} invited you to join {organization_name} on {PLATFORM_NAME} "
            f"as {context['role_label']}.\n\n"
            f"Accept the invitation and set your password here:\n\n"
            f"{accept_url}\n\n"
            f"This invitation expires in {expires_in}."
        )

        return f"You're invited to join {organization_name} on {PLATFORM_NAME}", html, text

    def render_verification_email(
        self,
        user_name: str,
        verification_url: str,
        expires_in: str = "24 hours",
    ) -> tuple[str, str, str]:
        """
        Render email verification email.

        Returns:
            Tuple of (subject, html_content, text_content)
        """
        context = {
            "user_name": user_name,
            "verification_url": verification_url,
            "expires_in": expires_in,
        }

        html = self.render_template("verification.html", context)
        text = self._generate_text_version(
            f"Welcome, {user_name}!\n\n"
            f"Please verify your email address by opening the link below:\n\n"
            f"{verification_url}\n\n"
            f"This link will expire in {expires_in}."
        )

        return "Verify your email address", html, text

    def render_password_reset_email(
        self,
        user_name: str,
        reset_url: str,
        expires_in: str = "30 minutes",
    ) -> tuple[str, str, str]:
        """
        Render password reset email.

        Returns:
            Tuple of (subject, html_content, text_content)
        """
        context = {
            "user_name": user_name,
            "reset_url": reset_url,
            "expires_in": expires_in,
        }

        html = self.render_template("password_reset.html", context)
        text = self._generate_text_version(
            f"Hi {user_name},\n\n"
            f"We received a request to reset your password.\n\n"
            f"Open this link to choose a new one: {reset_url}\n\n"
            f"This link will expire in {expires_in}.\n\n"
            f"If you didn't request this, your password stays unchanged."
        )

        return "Reset your password", html, text

    def render_password_changed_email(
        self,
        user_name: str,
        changed_at: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> tuple[str, str, str]:
        """
        Render password changed notification.

        Returns:
            Tuple of (subject, html_content, text_content)
        """
        reset_url = f"{self._frontend_url}/forgot-password"
        context = {
            "user_name": user_name,
            "changed_at": changed_at or datetime.utcnow().strftime("%Y-%m-%d %H:%M UTC"),
            "ip_address": ip_address,
            "reset_url": reset_url,
        }

        html = self.render_template("password_changed.html", context)
        text = self._generate_text_version(
            f"Hi {user_name},\n\n"
            f"Your password was changed on {context['changed_at']}.\n\n"
            f"If you made this change, no action is needed.\n\n"
            f"If you didn't change your password, reset it immediately:\n"
            f"{reset_url}"
        )

        return "Your password has been changed", html, text

    def render_welcome_email(
        self,
        user_name: str,
        organization_name: Optional[str] = None,
    ) -> tuple[str, str, str]:
        """
        Render the welcome email sent once a membership becomes active.

        Returns:
            Tuple of (subject, html_content, text_content)
        """
        context = {
            "user_name": user_name,
            "organization_name": organization_name,
            "dashboard_url": f"{self._frontend_url}/dashboard",
        }

        html = self.render_template("welcome.html", context)
        text = self._generate_text_version(
            f"Welcome to {PLATFORM_NAME}, {user_name}!\n\n"
            + (f"You are now a member of {organization_name}.\n\n" if organization_name else "")
            + f"Get started at: {context['dashboard_url']}"
        )

        return f"Welcome to {PLATFORM_NAME}", html, text

    @staticmethod
    def _generate_text_version(content: str) -> str:
        """Append the standard footer to a plain text body."""
        footer = (
            "\n\n---\n"
            f"{PLATFORM_NAME}\n"
            "If you didn't expect this email, please ignore it."
        )
        return content.strip() + footer
