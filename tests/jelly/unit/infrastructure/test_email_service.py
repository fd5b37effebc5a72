"""Unit tests for EmailService rendering and delivery backends."""

import json
import logging

import httpx
import pytest

from jelly.domain.shared.exceptions import ExternalServiceError
from jelly.infrastructure.email import TEMPLATES, EmailService
from jelly.infrastructure.email.email_service import POSTMARK_API_URL
from tests.shared.fixtures.settings import build_settings

VERIFY_CONTEXT = {
    "subject": "Verify your new account",
    "name": "Ada",
    "action_url": "https://jelly.test/accounts/verify/abc",
}


class TestRender:
    def setup_method(self):
        self.service = EmailService(build_settings())

    def test_verify_account(self):
        text, html = self.service.render("verify-account", VERIFY_CONTEXT)

        assert "Ada" in text
        assert VERIFY_CONTEXT["action_url"] in text
        assert f'href="{VERIFY_CONTEXT["action_url"]}"' in html
        assert "<title>Verify your new account</title>" in html

    def test_welcome_uses_help_url(self):
        text, _ = self.service.render("welcome", {"subject": "Welcome", "name": "Ada"})

        assert "https://jelly.test/help" in text

    @pytest.mark.parametrize("template", sorted(TEMPLATES))
    def test_every_template_renders(self, template):
        context = {"subject": "Subject", "name": "Ada", "action_url": "https://jelly.test/x"}

        text, html = self.service.render(template, context)

        assert text.strip()
        assert html.startswith("<!DOCTYPE html>")

    @pytest.mark.parametrize("template", ["welcome", "odd-registration-attempt"])
    def test_html_escapes_account_name(self, template):
        name = '<a href="https://evil.test">Click</a>'
        context = {"subject": "Hi", "name": name, "action_url": "https://jelly.test/x"}

        text, html = self.service.render(template, context)

        assert '<a href="https://evil.test">' not in html
        assert "&lt;a href=&#34;https://evil.test&#34;&gt;Click&lt;/a&gt;" in html
        assert name in text

    def test_unknown_template(self):
        with pytest.raises(ValueError, match="Unknown email template"):
            self.service.render("birthday", {})

    def test_missing_context_key(self):
        with pytest.raises(ValueError, match="action_url"):
            self.service.render("verify-account", {"subject": "s", "name": "Ada"})


class TestConsoleBackend:
    async def test_logs_instead_of_sending(self, make_settings, caplog):
        service = EmailService(make_settings(email_backend="console"))

        with caplog.at_level(logging.INFO, logger="jelly.infrastructure.email"):
            await service.send("ada@example.com", "verify-account", VERIFY_CONTEXT)

        assert "ada@example.com" in caplog.text
        assert VERIFY_CONTEXT["action_url"] in caplog.text


class TestPostmarkBackend:
    def _service(self, make_settings, handler):
        settings = make_settings(
            email_backend="postmark",
            postmark_api_key="server-token",
            email_default_from="Jelly <noreply@jelly.test>",
        )
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return EmailService(settings, http_client=client)

    async def test_posts_message(self, make_settings):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"ErrorCode": 0, "Message": "OK"})

        service = self._service(make_settings, handler)
        await service.send("ada@example.com", "verify-account", VERIFY_CONTEXT)

        [request] = requests
        assert str(request.url) == POSTMARK_API_URL
        assert request.headers["X-Postmark-Server-Token"] == "server-token"
        payload = json.loads(request.content)
        assert payload["To"] == "ada@example.com"
        assert payload["From"] == "Jelly <noreply@jelly.test>"
        assert payload["Subject"] == "Verify your new account"
        assert payload["Tag"] == "verify-account"
        assert VERIFY_CONTEXT["action_url"] in payload["TextBody"]

    async def test_rejection_raises(self, make_settings):
        service = self._service(
            make_settings,
            lambda request: httpx.Response(422, json={"ErrorCode": 300, "Message": "Invalid"}),
        )

        with pytest.raises(ExternalServiceError, match="422"):
            await service.send("ada@example.com", "verify-account", VERIFY_CONTEXT)

    async def test_timeout_raises(self, make_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("slow", request=request)

        service = self._service(make_settings, handler)

        with pytest.raises(ExternalServiceError, match="timed out"):
            await service.send("ada@example.com", "verify-account", VERIFY_CONTEXT)

    async def test_missing_api_key(self, make_settings):
        service = EmailService(make_settings(email_backend="postmark"))

        with pytest.raises(ExternalServiceError, match="API key"):
            await service.send("ada@example.com", "verify-account", VERIFY_CONTEXT)


class TestSmtpBackend:
    async def test_missing_host(self, make_settings):
        service = EmailService(make_settings(email_backend="smtp", smtp_host=""))

        with pytest.raises(ExternalServiceError, match="SMTP host"):
            await service.send("ada@example.com", "verify-account", VERIFY_CONTEXT)

    async def test_connection_refused(self, make_settings, monkeypatch):
        import smtplib

        def refuse(*args, **kwargs):
            raise ConnectionRefusedError("refused")

        monkeypatch.setattr(smtplib, "SMTP", refuse)
        service = EmailService(make_settings(email_backend="smtp", smtp_host="mail.jelly.test"))

        with pytest.raises(ExternalServiceError, match="SMTP delivery failed"):
            await service.send("ada@example.com", "verify-account", VERIFY_CONTEXT)
