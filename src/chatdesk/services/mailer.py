"""Transactional email through the Resend HTTP API."""

from __future__ import annotations

import html
import logging
from dataclasses import dataclass

import httpx

from chatdesk.core.errors import UnavailableError
from chatdesk.core.settings import settings

# Configure logger for this module
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MailerConfig:
    """Immutable configuration for outbound email."""

    api_key: str | None
    api_url: str
    from_address: str | None
    from_name: str
    timeout_seconds: float

    @property
    def enabled(self) -> bool:
        return bool(self.api_key and self.from_address)


def load_mailer_config() -> MailerConfig:
    """Build configuration object from global settings."""
    return MailerConfig(
        api_key=settings.resend_api_key,
        api_url=settings.resend_api_url,
        from_address=settings.mail_from_address,
        from_name=settings.mail_from_name,
        timeout_seconds=float(settings.external_http_timeout_seconds),
    )


class Mailer:
    """Sends HTML email; one ``httpx.AsyncClient`` per call."""

    def __init__(self, config: MailerConfig | None = None) -> None:
        self.config = config or load_mailer_config()

    async def send(self, to: str, subject: str, body_html: str) -> None:
        """Send one email.

        Raises:
            UnavailableError: If email is not configured or the API call fails
        """
        if not self.config.enabled:
            raise UnavailableError("Email delivery is not configured")

        payload = {
            "from": f"{self.config.from_name} <{self.config.from_address}>",
            "to": [to],
            "subject": subject,
            "html": body_html,
        }
        headers = {"Authorization": f"Bearer {self.config.api_key}"}
        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self.config.timeout_seconds)) as client:
                response = await client.post(self.config.api_url, json=payload, headers=headers)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise UnavailableError("Email service is unavailable") from exc

    async def send_in_background(self, to: str, subject: str, body_html: str) -> None:
        """Send one email, logging instead of raising on failure.

        For notifications attached to an operation that already succeeded.
        """
        try:
            await self.send(to, subject, body_html)
        except UnavailableError as exc:
            logger.warning("Email to %s (%s) not sent: %s", to, subject, exc)


def verification_code_email(code: str) -> tuple[str, str]:
    """Return subject and body for a registration code."""
    return (
        "Your verification code",
        "<h2>Welcome!</h2><p>Your verification code is:</p>"
        f"<p><strong>{html.escape(code)}</strong></p>"
        f"<p>The code expires in {settings.verification_code_ttl_seconds // 60} minutes.</p>",
    )


def password_reset_email(reset_link: str) -> tuple[str, str]:
    """Return subject and body for a password reset link."""
    return (
        "Reset your password",
        "<h2>Password reset requested</h2>"
        f'<p><a href="{html.escape(reset_link, quote=True)}">Choose a new password</a></p>'
        f"<p>This link expires in {settings.password_reset_expire_minutes} minutes. "
        "If you did not ask for it, ignore this email.</p>",
    )


def welcome_email(display_name: str) -> tuple[str, str]:
    """Return subject and body sent after registration."""
    return (
        f"Welcome to {settings.app_name}",
        f"<p>Hi {html.escape(display_name)}, your account is ready.</p>",
    )


def ticket_notification_email(user_email: str, subject: str, message: str) -> tuple[str, str]:
    """Return subject and body notifying the admin about a new ticket."""
    return (
        f"New ticket: {subject}",
        f"<p>From {html.escape(user_email)}</p><pre>{html.escape(message)}</pre>",
    )


def get_mailer() -> Mailer:
    """Return a mailer configured from settings."""
    return Mailer()
