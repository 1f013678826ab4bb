"""Models describing chat messages and the conversations they belong to."""

from datetime import datetime

from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from chatdesk.db.session import Base
from chatdesk.db.time import utcnow

# Scope key of the public room. Conversation ids are two UUIDs joined by ":",
# so they can never collide with it.
PUBLIC_SCOPE = "public"


class ChatMessage(Base):
    """One message in the public room or in a two-party conversation.

    ``content`` holds the transport-encoded body; the server never stores
    plaintext when an obfuscation key is configured. Rows are never updated.
    """

    __tablename__ = "chat_message"
    __table_args__ = (Index("ix_chat_message_scope_id", "scope_key", "id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    scope_key: Mapped[str] = mapped_column(String(80), nullable=False)

    sender_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("user_account.id", ondelete="CASCADE"), nullable=False
    )
    sender_email: Mapped[str] = mapped_column(String(320), nullable=False)
    sender_username: Mapped[str | None] = mapped_column(String(64), nullable=True)

    # Null receiver means the public room.
    receiver_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("user_account.id", ondelete="CASCADE"), nullable=True
    )
    receiver_email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    receiver_username: Mapped[str | None] = mapped_column(String(64), nullable=True)

    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    @property
    def is_public(self) -> bool:
        """Return True for public-room messages."""
        return self.receiver_id is None


class Conversation(Base):
    """Materialized scope: the public room or one unordered pair of users.

    The row doubles as the per-scope lock taken before retention trimming.
    """

    __tablename__ = "conversation"

    id: Mapped[str] = mapped_column(String(80), primary_key=True)
    participant_a: Mapped[str | None] = mapped_column(String(36), index=True, nullable=True)
    participant_b: Mapped[str | None] = mapped_column(String(36), index=True, nullable=True)
    last_message_preview: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    def peer_of(self, user_id: str) -> str | None:
        """Return the participant that is not ``user_id``."""
        if self.participant_a == user_id:
            return self.participant_b
        if self.participant_b == user_id:
            return self.participant_a
        return None
