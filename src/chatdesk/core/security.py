"""Password hashing and signed-token helpers."""
from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from chatdesk.core.errors import InvalidArgumentError, UnauthenticatedError
from chatdesk.core.settings import settings

PASSWORD_RESET_PURPOSE = "password_reset"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """Return a bcrypt hash of ``password``."""
    return pwd_context.hash(password)


def check_password_length(password: str) -> None:
    """Raise ``InvalidArgumentError`` if ``password`` is too short."""
    if len(password or "") < settings.password_min_length:
        raise InvalidArgumentError(
            f"Password must be at least {settings.password_min_length} characters"
        )


def verify_password(password: str, password_hash: str) -> bool:
    """Return True if ``password`` matches the stored hash."""
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        return False


def create_access_token(
    user_id: str,
    *,
    email: str,
    role: str,
    expires_minutes: int | None = None,
) -> str:
    """Create the bearer token that identifies a user on privileged requests.

    Args:
        user_id: Stable identifier placed in the ``sub`` claim
        email: User email claim
        role: ``user`` or ``admin``
        expires_minutes: Override for the configured lifetime

    Returns:
        Encoded JWT string
    """
    lifetime = expires_minutes or settings.access_token_expire_minutes
    to_encode: dict[str, Any] = {
        "sub": user_id,
        "email": email,
        "role": role,
        "exp": datetime.now(UTC) + timedelta(minutes=lifetime),
    }
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def decode_access_token(token: str) -> dict[str, Any]:
    """Verify a bearer token and return its claims.

    Raises:
        UnauthenticatedError: If the token is malformed, expired or unsigned
    """
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as err:
        raise UnauthenticatedError("Could not validate credentials") from err
    if not payload.get("sub"):
        raise UnauthenticatedError("Could not validate credentials")
    return payload


def create_password_reset_token(user_id: str, email: str) -> str:
    """Create a short-lived token signed with the password-reset secret."""
    expire = datetime.now(UTC) + timedelta(minutes=settings.password_reset_expire_minutes)
    to_encode = {
        "sub": user_id,
        "email": email,
        "purpose": PASSWORD_RESET_PURPOSE,
        "exp": expire,
    }
    encoded: str = jwt.encode(
        to_encode,
        settings.effective_password_reset_secret,
        algorithm=settings.jwt_algorithm,
    )
    return encoded


def decode_password_reset_token(token: str) -> str:
    """Return the user id carried by a password-reset token.

    Raises:
        InvalidArgumentError: If the token expired or is not a reset token
    """
    try:
        payload = jwt.decode(
            token,
            settings.effective_password_reset_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except ExpiredSignatureError as err:
        raise InvalidArgumentError("Password reset link has expired, request a new one") from err
    except JWTError as err:
        raise InvalidArgumentError("Password reset link is invalid, request a new one") from err

    if payload.get("purpose") != PASSWORD_RESET_PURPOSE or not payload.get("sub"):
        raise InvalidArgumentError("Password reset link is invalid, request a new one")
    return str(payload["sub"])
