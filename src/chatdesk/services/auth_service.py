"""Credential checks shared by the user and admin login endpoints."""
from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from chatdesk.core import security
from chatdesk.core.errors import ForbiddenError, UnauthenticatedError
from chatdesk.models import User
from chatdesk.services.ephemeral import ExpiringStore
from chatdesk.services.user_service import get_user_by_email
from chatdesk.services.verification import check_login_rate

logger = logging.getLogger(__name__)


def authenticate(
    db: Session,
    store: ExpiringStore,
    client_key: str,
    email: str,
    password: str,
    *,
    require_admin: bool = False,
) -> User:
    """Check credentials and return the account.

    Every call counts toward the login rate limit of ``client_key``.

    Raises:
        RateLimitedError: Too many attempts from this client
        UnauthenticatedError: Unknown email or wrong password
        ForbiddenError: Banned account, or not an admin when one is required
    """
    check_login_rate(store, client_key)

    user = get_user_by_email(db, email)
    if user is None or not security.verify_password(password, user.password_hash):
        logger.info("Failed login for %s from %s", email, client_key)
        raise UnauthenticatedError("Invalid email or password")
    if user.is_banned:
        raise ForbiddenError("Account is banned")
    if require_admin and not user.is_admin:
        raise ForbiddenError("Admin access required")
    return user


def issue_token(user: User) -> str:
    """Return a bearer token for ``user``."""
    return security.create_access_token(user.id, email=user.email, role=user.role)
