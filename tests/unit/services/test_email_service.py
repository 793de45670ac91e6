"""
Unit tests for the email templates and EmailService.

WHY: Invitation and reset links only work if the rendered email carries
the right URL, and a provider failure must never reach the caller.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from tasksetu.core.exceptions import EmailServiceError
from tasksetu.services.email import (
    EmailMessage,
    EmailResult,
    EmailService,
    EmailType,
    MockEmailProvider,
    ResendProvider,
    deliver_quietly,
)
from tasksetu.services.email_template_service import EmailTemplateService


@pytest.fixture
def templates():
    return EmailTemplateService(frontend_url="http://frontend.test/")


class TestEmailTemplateService:
    def test_invitation(self, templates):
        subject, html, text = templates.render_invitation_email(
            organization_name="Acme Corp",
            inviter_name="Asha Rao",
            accept_url="http://frontend.test/accept-invite?token=abc",
            role="org_admin",
        )

        assert subject == "You're invited to join Acme Corp on TaskSetu"
        assert "accept-invite?token=abc" in html
        assert "org admin" in html
        assert "7 days" in text
        assert text.endswith("If you didn't expect this email, please ignore it.")

    def test_autoescapes_names(self, templates):
        _, html, _ = templates.render_invitation_email(
            organization_name="<script>alert(1)</script>",
            inviter_name="Eve",
            accept_url="http://frontend.test/accept-invite?token=abc",
            role="employee",
        )

        assert "<script>" not in html
        assert "&lt;script&gt;" in html

    def test_password_changed_mentions_ip(self, templates):
        _, html, _ = templates.render_password_changed_email(user_name="Asha", ip_address="10.0.0.7")
        assert "10.0.0.7" in html
        assert "http://frontend.test/forgot-password" in html

    def test_welcome_without_organization(self, templates):
        _, html, text = templates.render_welcome_email(user_name="Solo")
        assert "member of" not in text
        assert "http://frontend.test/dashboard" in html

    def test_missing_template(self, templates):
        with pytest.raises(EmailServiceError):
            templates.render_template("nope.html", {})


class TestEmailService:
    def test_from_settings_without_key_uses_mock(self, test_settings):
        service = EmailService.from_settings(test_settings)
        assert isinstance(service.provider, MockEmailProvider)

    def test_from_settings_with_key_uses_resend(self, test_settings):
        service = EmailService.from_settings(test_settings.model_copy(update={"RESEND_API_KEY": "re_x"}))
        assert isinstance(service.provider, ResendProvider)

    async def test_reset_email_carries_link(self, email_service):
        result = await email_service.send_password_reset_email("a@acme.com", "Asha", "tok123")

        assert result.success is True
        message = MockEmailProvider.last_email_to("a@acme.com")
        assert message.email_type == EmailType.PASSWORD_RESET
        assert "http://frontend.test/reset-password?token=tok123" in message.html_content
        assert "30 minutes" in message.text_content


class TestResendProvider:
    def _message(self):
        return EmailMessage(to_email="a@acme.com", subject="Hi", html_content="<p>Hi</p>")

    async def test_not_configured(self):
        result = await ResendProvider(None, "noreply@tasksetu.com").send(self._message())
        assert result.success is False

    async def test_success(self):
        response = MagicMock(status_code=200)
        response.json.return_value = {"id": "msg_1"}
        client = AsyncMock()
        client.post.return_value = response
        client.__aenter__.return_value = client

        with patch("tasksetu.services.email.httpx.AsyncClient", return_value=client):
            result = await ResendProvider("re_x", "noreply@tasksetu.com").send(self._message())

        assert result.success is True
        assert result.message_id == "msg_1"
        payload = client.post.call_args.kwargs["json"]
        assert payload["to"] == ["a@acme.com"]
        assert payload["from"] == "noreply@tasksetu.com"

    async def test_transport_error_is_a_failed_result(self):
        client = AsyncMock()
        client.post.side_effect = httpx.ConnectError("down")
        client.__aenter__.return_value = client

        with patch("tasksetu.services.email.httpx.AsyncClient", return_value=client):
            result = await ResendProvider("re_x", "noreply@tasksetu.com").send(self._message())

        assert result.success is False
        assert "down" in result.error


class TestDeliverQuietly:
    async def test_returns_success_flag(self):
        send = AsyncMock(return_value=EmailResult(success=False, error="bounced"))
        assert await deliver_quietly(send, to_email="a@acme.com") is False

    async def test_swallows_render_errors(self):
        send = AsyncMock(side_effect=EmailServiceError("template broken"))
        assert await deliver_quietly(send) is False
