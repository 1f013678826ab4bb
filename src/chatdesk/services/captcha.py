"""Bot verification through Cloudflare Turnstile."""

from __future__ import annotations

import logging

import httpx

from chatdesk.core.errors import UnavailableError
from chatdesk.core.settings import settings

# Configure logger for this module
logger = logging.getLogger(__name__)


class TurnstileVerifier:
    """Checks a client-side Turnstile token with the siteverify endpoint."""

    def __init__(
        self,
        secret_key: str | None = None,
        verify_url: str | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        self.secret_key = secret_key if secret_key is not None else settings.turnstile_secret_key
        self.verify_url = verify_url or settings.turnstile_verify_url
        self.timeout_seconds = timeout_seconds or settings.external_http_timeout_seconds

    async def verify(self, token: str, remote_ip: str | None = None) -> bool:
        """Return True if Turnstile accepts ``token``.

        Raises:
            UnavailableError: If the secret is missing or the service cannot be reached
        """
        if not self.secret_key:
            raise UnavailableError("Bot verification is not configured")

        payload = {"secret": self.secret_key, "response": token}
        if remote_ip:
            payload["remoteip"] = remote_ip
        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout_seconds)) as client:
                response = await client.post(self.verify_url, json=payload)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Turnstile verification failed: %s", exc)
            raise UnavailableError("Bot verification service is unavailable") from exc

        if not data.get("success"):
            logger.info("Turnstile rejected token: %s", data.get("error-codes"))
            return False
        return True


def get_captcha_verifier() -> TurnstileVerifier:
    """Return a verifier configured from settings."""
    return TurnstileVerifier()
