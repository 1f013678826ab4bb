"""Deterministic identifiers for two-party conversations."""

from __future__ import annotations

from typing import Final

from chatdesk.core.errors import InvalidArgumentError
from chatdesk.models.message import PUBLIC_SCOPE

# User ids are UUID strings, which never contain a colon.
SEPARATOR: Final[str] = ":"


def validate_user_id(user_id: str) -> str:
    """Return ``user_id`` if it can take part in a conversation id.

    Raises:
        InvalidArgumentError: If the id is empty, reserved or contains the separator
    """
    if not user_id or not user_id.strip():
        raise InvalidArgumentError("User id must not be empty")
    if SEPARATOR in user_id or user_id == PUBLIC_SCOPE:
        raise InvalidArgumentError("Malformed user id")
    return user_id


def derive_conversation_id(user_a: str, user_b: str) -> str:
    """Return the storage key shared by both directions of a conversation.

    The two ids are sorted before joining, so ``(a, b)`` and ``(b, a)`` map to
    the same key.

    Raises:
        InvalidArgumentError: If either id is malformed, or both are the same
            user (self-conversations are not supported)
    """
    validate_user_id(user_a)
    validate_user_id(user_b)
    if user_a == user_b:
        raise InvalidArgumentError("Cannot start a conversation with yourself")
    first, second = sorted((user_a, user_b))
    return f"{first}{SEPARATOR}{second}"


def split_conversation_id(conversation_id: str) -> tuple[str, str]:
    """Return the two participant ids encoded in a conversation id."""
    first, sep, second = conversation_id.partition(SEPARATOR)
    if not sep or not first or not second:
        raise InvalidArgumentError("Malformed conversation id")
    return first, second
