"""Registration codes and login throttling on top of the expiring store."""

from __future__ import annotations

import secrets

from chatdesk.core.errors import InvalidArgumentError, RateLimitedError
from chatdesk.core.settings import settings
from chatdesk.services.ephemeral import LOGIN_ATTEMPT_PREFIX, VERIFICATION_PREFIX, ExpiringStore


def generate_code() -> str:
    """Return a random six-digit code."""
    return f"{secrets.randbelow(900_000) + 100_000}"


def issue_code(store: ExpiringStore, email: str) -> str:
    """Create (or replace) the pending verification code for ``email``."""
    code = generate_code()
    store.put(f"{VERIFICATION_PREFIX}{email.strip().lower()}", code, settings.verification_code_ttl_seconds)
    return code


def redeem_code(store: ExpiringStore, email: str, code: str) -> None:
    """Consume the pending code for ``email``.

    Raises:
        InvalidArgumentError: If no live code matches
    """
    submitted = (code or "").strip()
    taken = store.take_if_valid(
        f"{VERIFICATION_PREFIX}{email.strip().lower()}",
        lambda stored: secrets.compare_digest(str(stored), submitted),
    )
    if taken is None:
        raise InvalidArgumentError("Verification code is invalid or has expired")


def check_login_rate(store: ExpiringStore, client_key: str) -> None:
    """Count a login attempt and reject it once the window is exhausted.

    Raises:
        RateLimitedError: After ``LOGIN_RATE_LIMIT_ATTEMPTS`` attempts in the window
    """
    attempts = store.increment(
        f"{LOGIN_ATTEMPT_PREFIX}{client_key}",
        settings.login_rate_limit_window_seconds,
    )
    if attempts > settings.login_rate_limit_attempts:
        minutes = max(1, settings.login_rate_limit_window_seconds // 60)
        raise RateLimitedError(f"Too many login attempts, try again in {minutes} minutes")
