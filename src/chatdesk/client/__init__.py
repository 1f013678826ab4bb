"""Python chat client: conversation state and an HTTP-driven session."""

from .session import ChatSendError, ChatSession
from .view import PUBLIC_KEY, ConversationEntry, ConversationView, TranscriptItem

__all__ = [
    "ChatSendError",
    "ChatSession",
    "ConversationEntry",
    "ConversationView",
    "PUBLIC_KEY",
    "TranscriptItem",
]
