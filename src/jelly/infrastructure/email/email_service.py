import asyncio
import logging
import smtplib
import ssl
from datetime import datetime, timezone
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any

import httpx
from jinja2 import UndefinedError

from jelly.domain.shared.exceptions import ExternalServiceError
from jelly.infrastructure.email.templates import TEMPLATES, template_env
from jelly_config.settings import Settings

logger = logging.getLogger(__name__)

POSTMARK_API_URL = "https://api.postmarkapp.com/email"


class EmailService:
    """Renders a named template and hands it to the configured backend.

    Backends are ``console`` (log only), ``smtp`` and ``postmark``. Every
    transport failure surfaces as ``ExternalServiceError`` so the queue
    worker can retry the job.
    """

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._settings = settings
        self._http_client = http_client

    @property
    def backend(self) -> str:
        return self._settings.email_backend

    def render(
        self,
        template: str,
        context: dict[str, Any],
    ) -> tuple[str, str]:
        """Return the text and HTML bodies of ``template``.

        Raises
        ------
        ValueError
            If the template is unknown or the context lacks one of its keys
        """
        self._check_template(template)
        full_context = self._base_context(context)
        try:
            text_body = template_env.get_template(f"{template}.txt").render(full_context)
            html_body = template_env.get_template(f"{template}.html").render(full_context)
        except UndefinedError as e:
            msg = f"Template {template!r} is missing context: {e.message}"
            raise ValueError(msg) from e
        return text_body, html_body

    async def send(
        self,
        to: str,
        template: str,
        context: dict[str, Any],
    ) -> None:
        """Render ``template`` with ``context`` and deliver it to ``to``.

        ``context`` must contain ``subject``.

        Raises
        ------
        ExternalServiceError
            If the backend rejects the message or cannot be reached
        """
        subject = str(context.get("subject", ""))
        text_body, html_body = self.render(template, context)

        if self.backend == "console":
            logger.info(
                "Email (console backend) to %s: %s\n%s",
                to,
                subject,
                text_body,
            )
            return
        if self.backend == "postmark":
            await self._send_postmark(to, subject, template, text_body, html_body)
        else:
            message = self._create_message(to, subject, text_body, html_body)
            await asyncio.to_thread(self._send_smtp, to, message)

        logger.info("Email %r sent to %s", template, to)

    def _check_template(self, template: str) -> None:
        if template not in TEMPLATES:
            msg = f"Unknown email template: {template!r}"
            raise ValueError(msg)

    def _base_context(self, context: dict[str, Any]) -> dict[str, Any]:
        base: dict[str, Any] = {
            "subject": "",
            "year": datetime.now(tz=timezone.utc).year,
            "app_name": self._settings.app_name,
            "domain": self._settings.public_domain,
            "help_url": self._settings.jelly_help_url or self._settings.public_domain,
        }
        base.update(context)
        return base

    def _create_message(
        self,
        to_email: str,
        subject: str,
        text_body: str,
        html_body: str | None = None,
    ) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self._settings.email_default_from
        msg["To"] = to_email

        msg.attach(MIMEText(text_body, "plain"))
        if html_body:
            msg.attach(MIMEText(html_body, "html"))

        return msg

    def _send_smtp(self, to_email: str, message: MIMEMultipart) -> None:
        settings = self._settings
        if not settings.smtp_host:
            msg = "SMTP host not configured"
            raise ExternalServiceError(msg)

        smtp_password = (
            settings.smtp_password.get_secret_value() if settings.smtp_password else ""
        )

        try:
            if settings.smtp_use_tls and not settings.smtp_starttls:
                # Implicit TLS (port 465)
                with smtplib.SMTP_SSL(
                    settings.smtp_host,
                    settings.smtp_port,
                    timeout=settings.email_timeout,
                    context=ssl.create_default_context(),
                ) as server:
                    if settings.smtp_user:
                        server.login(settings.smtp_user, smtp_password)
                    server.send_message(message)
            else:
                # STARTTLS (port 587) or plain
                with smtplib.SMTP(
                    settings.smtp_host,
                    settings.smtp_port,
                    timeout=settings.email_timeout,
                ) as server:
                    if settings.smtp_starttls:
                        server.starttls(context=ssl.create_default_context())
                    if settings.smtp_user:
                        server.login(settings.smtp_user, smtp_password)
                    server.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email to %s: %s", to_email, e)
            msg = f"SMTP delivery failed: {e}"
            raise ExternalServiceError(msg) from e

    async def _send_postmark(  # noqa: PLR0913
        self,
        to_email: str,
        subject: str,
        template: str,
        text_body: str,
        html_body: str,
    ) -> None:
        api_key = self._settings.postmark_api_key
        if api_key is None:
            msg = "Postmark API key not configured"
            raise ExternalServiceError(msg)

        payload = {
            "From": self._settings.email_default_from,
            "To": to_email,
            "Subject": subject,
            "TextBody": text_body,
            "HtmlBody": html_body,
            "Tag": template,
            "MessageStream": self._settings.postmark_message_stream,
        }
        headers = {
            "Accept": "application/json",
            "X-Postmark-Server-Token": api_key.get_secret_value(),
        }

        client = self._http_client or httpx.AsyncClient(
            timeout=self._settings.email_timeout
        )
        try:
            response = await client.post(POSTMARK_API_URL, json=payload, headers=headers)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            logger.error("Postmark timed out sending to %s", to_email)
            msg = "Postmark request timed out"
            raise ExternalServiceError(msg) from e
        except httpx.HTTPStatusError as e:
            logger.error(
                "Postmark rejected email to %s: %s %s",
                to_email,
                e.response.status_code,
                e.response.text,
            )
            msg = f"Postmark rejected the message ({e.response.status_code})"
            raise ExternalServiceError(msg) from e
        except httpx.HTTPError as e:
            logger.error("Postmark request failed for %s: %s", to_email, e)
            msg = f"Postmark request failed: {e}"
            raise ExternalServiceError(msg) from e
        finally:
            if self._http_client is None:
                await client.aclose()

