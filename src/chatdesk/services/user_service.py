"""CRUD-style helpers for managing user accounts."""
from __future__ import annotations

import logging
from typing import Sequence

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from chatdesk.core import security
from chatdesk.core.errors import ConflictError, InvalidArgumentError, NotFoundError, UnavailableError
from chatdesk.models import ChatMessage, Conversation, Ticket, User

__all__ = [
    "get_user",
    "get_user_by_email",
    "list_users",
    "search_users",
    "create_user",
    "is_username_taken",
    "set_username",
    "set_password",
    "toggle_ban",
    "delete_user",
]

SEARCH_MIN_LENGTH = 2
SEARCH_RESULT_LIMIT = 10

logger = logging.getLogger(__name__)


def get_user(db: Session, user_id: str) -> User | None:
    """Return a single user by primary key."""
    return db.get(User, user_id)


def get_user_by_email(db: Session, email: str) -> User | None:
    """Return the user registered with ``email`` (case-insensitive)."""
    return db.scalars(select(User).where(func.lower(User.email) == email.strip().lower())).first()


def list_users(db: Session) -> Sequence[User]:
    """Return every account, newest first."""
    return db.scalars(select(User).order_by(User.created_at.desc())).all()


def search_users(db: Session, query: str, *, exclude_id: str) -> Sequence[User]:
    """Return users whose username or email contains ``query``.

    Raises:
        InvalidArgumentError: If the query is shorter than two characters
    """
    term = (query or "").strip()
    if len(term) < SEARCH_MIN_LENGTH:
        raise InvalidArgumentError(f"Search query must be at least {SEARCH_MIN_LENGTH} characters")
    escaped = term.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    pattern = f"%{escaped}%"
    return db.scalars(
        select(User)
        .where(
            User.id != exclude_id,
            User.is_banned.is_(False),
            or_(
                func.lower(User.username).like(pattern, escape="\\"),
                func.lower(User.email).like(pattern, escape="\\"),
            ),
        )
        .order_by(User.username, User.email)
        .limit(SEARCH_RESULT_LIMIT)
    ).all()


def create_user(db: Session, email: str, password: str, username: str | None = None) -> User:
    """Persist a new account with a hashed password.

    Raises:
        ConflictError: If the email or username is already taken
    """
    email = email.strip().lower()
    if get_user_by_email(db, email) is not None:
        raise ConflictError("Email is already registered")
    if username and is_username_taken(db, username):
        raise ConflictError("Username is already taken")

    db_user = User(email=email, username=username or None, password_hash=security.hash_password(password))
    db.add(db_user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("Email or username is already taken") from exc
    db.refresh(db_user)
    return db_user


def set_username(db: Session, db_user: User, username: str) -> User:
    """Change a user's username.

    Raises:
        ConflictError: If another account already uses it
    """
    username = username.strip()
    if not username:
        raise InvalidArgumentError("Username must not be empty")
    if username != db_user.username and is_username_taken(db, username):
        raise ConflictError("Username is already taken")
    db_user.username = username
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("Username is already taken") from exc
    db.refresh(db_user)
    return db_user


def set_password(db: Session, user_id: str, password: str) -> User:
    """Replace a user's password hash."""
    db_user = get_user(db, user_id)
    if db_user is None:
        raise NotFoundError("User not found")
    db_user.password_hash = security.hash_password(password)
    db.commit()
    return db_user


def toggle_ban(db: Session, user_id: str) -> User:
    """Flip the banned flag and return the updated user."""
    db_user = get_user(db, user_id)
    if db_user is None:
        raise NotFoundError("User not found")
    db_user.is_banned = not db_user.is_banned
    db.commit()
    db.refresh(db_user)
    return db_user


def delete_user(db: Session, user_id: str) -> None:
    """Remove a user together with their tickets, messages and conversations.

    Raises:
        NotFoundError: If no such user exists
        UnavailableError: If the cascade could not be applied
    """
    db_user = get_user(db, user_id)
    if db_user is None:
        raise NotFoundError("User not found")
    try:
        db.execute(delete(Ticket).where(Ticket.user_id == user_id))
        db.execute(
            delete(ChatMessage).where(
                or_(ChatMessage.sender_id == user_id, ChatMessage.receiver_id == user_id)
            )
        )
        db.execute(
            delete(Conversation).where(
                or_(Conversation.participant_a == user_id, Conversation.participant_b == user_id)
            )
        )
        db.delete(db_user)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Failed to delete user %s: %s", user_id, exc)
        raise UnavailableError("Could not delete user") from exc


def is_username_taken(db: Session, username: str) -> bool:
    """Return True if another account already uses ``username``."""
    return db.scalars(select(User.id).where(User.username == username)).first() is not None
