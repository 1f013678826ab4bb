"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from chatdesk.core.errors import ForbiddenError, ServiceError, UnauthenticatedError
from chatdesk.core.security import decode_access_token
from chatdesk.db.session import get_db
from chatdesk.models import User
from chatdesk.services.captcha import TurnstileVerifier, get_captcha_verifier
from chatdesk.services.chat import MessageStore
from chatdesk.services.ephemeral import ExpiringStore, get_expiring_store
from chatdesk.services.mailer import Mailer, get_mailer
from chatdesk.services.realtime import RealtimeBroker, get_realtime_broker

# HTTP Bearer scheme for JWT authentication; missing credentials are reported as 401 below
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def http_error(err: ServiceError) -> HTTPException:
    """Translate a service error into the matching HTTP response."""
    return HTTPException(status_code=err.status_code, detail=str(err))


def authenticate_token(db: Session, token: str | None) -> User:
    """Resolve a bearer token to an active user.

    Args:
        db: Database session
        token: Raw JWT, possibly missing

    Returns:
        User object for the authenticated user

    Raises:
        UnauthenticatedError: If the token is missing, invalid or names no user
        ForbiddenError: If the account is banned
    """
    if not token:
        raise UnauthenticatedError("Not authenticated")
    payload = decode_access_token(token)
    user = db.get(User, str(payload["sub"]))
    if user is None:
        raise UnauthenticatedError("User not found")
    if user.is_banned:
        raise ForbiddenError("Account is banned")
    return user


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: SessionDep,
) -> User:
    """Get the current authenticated user from JWT token.

    Raises:
        HTTPException: 401 for missing/invalid tokens, 403 for banned accounts
    """
    try:
        return authenticate_token(db, credentials.credentials if credentials else None)
    except ServiceError as err:
        raise http_error(err) from err


# Type alias for current user dependency
CurrentUserDep = Annotated[User, Depends(get_current_user)]


def require_admin(current_user: CurrentUserDep) -> User:
    """Allow only accounts holding the admin role."""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user


AdminUserDep = Annotated[User, Depends(require_admin)]


def get_message_store(db: SessionDep) -> MessageStore:
    """Return a message store bound to the request session."""
    return MessageStore(db)


def client_address(request: Request) -> str:
    """Return the caller's address used as the rate-limit key."""
    return request.client.host if request.client else "unknown"


MessageStoreDep = Annotated[MessageStore, Depends(get_message_store)]
BrokerDep = Annotated[RealtimeBroker, Depends(get_realtime_broker)]
ExpiringStoreDep = Annotated[ExpiringStore, Depends(get_expiring_store)]
MailerDep = Annotated[Mailer, Depends(get_mailer)]
CaptchaDep = Annotated[TurnstileVerifier, Depends(get_captcha_verifier)]
ClientAddressDep = Annotated[str, Depends(client_address)]
