"""SQLAlchemy models for the Chatdesk application."""

from .message import PUBLIC_SCOPE, ChatMessage, Conversation
from .ticket import Ticket
from .user import ROLE_ADMIN, ROLE_USER, User

__all__ = [
    "ChatMessage", "Conversation", "PUBLIC_SCOPE",
    "Ticket",
    "User", "ROLE_ADMIN", "ROLE_USER",
]
