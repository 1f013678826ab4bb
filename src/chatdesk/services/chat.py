"""Durable chat message log with per-scope retention.

A *scope* is either the public room (``PUBLIC_SCOPE``) or one two-party
conversation keyed by :func:`derive_conversation_id`. Every append runs as a
single transaction: lock the scope's conversation row, insert the message,
refresh the conversation preview, trim the scope down to the retention limit
and commit. Nothing is applied if any step fails.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import delete, func, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from chatdesk.core.errors import InvalidArgumentError, NotFoundError, UnavailableError
from chatdesk.core.settings import settings
from chatdesk.db.time import utcnow
from chatdesk.models import PUBLIC_SCOPE, ChatMessage, Conversation, User
from chatdesk.services.codec import MessageCodec
from chatdesk.services.conversation_keys import derive_conversation_id

# Configure logger for this module
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PeerProfile:
    """Public identity of a conversation partner."""

    id: str
    email: str | None
    username: str | None


@dataclass(frozen=True)
class ConversationSummary:
    """Newest message of one private conversation, from the caller's side."""

    conversation_id: str
    peer_id: str
    peer_profile: PeerProfile
    last_message: str | None
    last_timestamp: datetime


class MessageStore:
    """Append, list and trim chat messages.

    Args:
        db: Session used for every read and write
        codec: Obfuscation applied to bodies before storage
        retention_limit: Maximum number of rows kept per scope
        max_length: Maximum plaintext length accepted
    """

    def __init__(
        self,
        db: Session,
        *,
        codec: MessageCodec | None = None,
        retention_limit: int | None = None,
        max_length: int | None = None,
    ) -> None:
        self.db = db
        self.codec = codec or MessageCodec(settings.chat_encryption_key)
        self.retention_limit = (
            settings.chat_retention_limit if retention_limit is None else retention_limit
        )
        self.max_length = settings.chat_max_message_length if max_length is None else max_length
        if self.retention_limit < 1 or self.max_length < 1:
            raise ValueError("retention_limit and max_length must be positive")

    # --- writes -------------------------------------------------------------------

    def append_public_message(
        self,
        sender_id: str,
        sender_email: str,
        sender_username: str | None,
        content: str,
    ) -> ChatMessage:
        """Persist a message to the public room and return the stored row."""
        encoded = self._prepare_content(content)
        try:
            self._lock_scope(PUBLIC_SCOPE, None, None)
            message = ChatMessage(
                scope_key=PUBLIC_SCOPE,
                sender_id=sender_id,
                sender_email=sender_email,
                sender_username=sender_username,
                receiver_id=None,
                content=encoded,
            )
            return self._commit_message(message)
        except SQLAlchemyError as exc:
            raise self._unavailable("public message", exc) from exc

    def append_private_message(
        self,
        sender_id: str,
        sender_email: str,
        sender_username: str | None,
        receiver_id: str,
        content: str,
    ) -> ChatMessage:
        """Persist a two-party message and return the stored row.

        The receiver's email and username are copied into the row so history
        still renders after the receiver's profile changes.

        Raises:
            InvalidArgumentError: Empty content, oversized content or bad receiver id
            NotFoundError: The receiver id is not a known user
            UnavailableError: The store failed; nothing was written
        """
        encoded = self._prepare_content(content)
        scope_key = derive_conversation_id(sender_id, receiver_id)
        try:
            receiver = self.db.get(User, receiver_id)
            if receiver is None:
                raise NotFoundError("Receiver not found")
            first, second = sorted((sender_id, receiver_id))
            self._lock_scope(scope_key, first, second)
            message = ChatMessage(
                scope_key=scope_key,
                sender_id=sender_id,
                sender_email=sender_email,
                sender_username=sender_username,
                receiver_id=receiver.id,
                receiver_email=receiver.email,
                receiver_username=receiver.username,
                content=encoded,
            )
            return self._commit_message(message)
        except SQLAlchemyError as exc:
            raise self._unavailable("private message", exc) from exc

    def trim_retention(self, scope_key: str, limit: int | None = None) -> int:
        """Delete the oldest rows of a scope beyond ``limit``.

        Runs inside the caller's transaction and does not commit. The cut-off
        is the id of the ``limit + 1``-th newest row; everything at or below it
        goes in one ``DELETE``, so the scope never keeps more than ``limit``.

        Returns:
            Number of rows deleted
        """
        keep = self.retention_limit if limit is None else limit
        threshold = self.db.execute(
            select(ChatMessage.id)
            .where(ChatMessage.scope_key == scope_key)
            .order_by(ChatMessage.id.desc())
            .offset(keep)
            .limit(1)
        ).scalar_one_or_none()
        if threshold is None:
            return 0

        result = self.db.execute(
            delete(ChatMessage)
            .where(ChatMessage.scope_key == scope_key, ChatMessage.id <= threshold)
            .execution_options(synchronize_session=False)
        )
        deleted = result.rowcount or 0
        if deleted:
            logger.debug("Trimmed %d messages from scope %s", deleted, scope_key)
        return deleted

    # --- reads --------------------------------------------------------------------

    def list_public_messages(self, limit: int | None = None) -> list[ChatMessage]:
        """Return the newest public messages in chronological order."""
        return self._list_scope(PUBLIC_SCOPE, limit)

    def list_private_messages(
        self,
        self_id: str,
        peer_id: str,
        limit: int | None = None,
    ) -> list[ChatMessage]:
        """Return the newest messages exchanged by two users, oldest first.

        Only the pair ``{self_id, peer_id}`` is ever read, so a third user
        cannot see the conversation.
        """
        return self._list_scope(derive_conversation_id(self_id, peer_id), limit)

    def list_recent_conversations(self, self_id: str) -> list[ConversationSummary]:
        """Return one summary per peer the user has talked to, newest first."""
        conversations: Sequence[Conversation] = self.db.scalars(
            select(Conversation)
            .where(or_(Conversation.participant_a == self_id, Conversation.participant_b == self_id))
            .order_by(Conversation.updated_at.desc(), Conversation.id)
        ).all()

        peer_ids = [peer for conv in conversations if (peer := conv.peer_of(self_id))]
        profiles = {
            user.id: PeerProfile(id=user.id, email=user.email, username=user.username)
            for user in self.db.scalars(select(User).where(User.id.in_(peer_ids)))
        } if peer_ids else {}

        summaries: list[ConversationSummary] = []
        for conv in conversations:
            peer_id = conv.peer_of(self_id)
            if peer_id is None:
                continue
            profile = profiles.get(peer_id) or self._profile_from_history(conv.id, peer_id)
            summaries.append(
                ConversationSummary(
                    conversation_id=conv.id,
                    peer_id=peer_id,
                    peer_profile=profile,
                    last_message=conv.last_message_preview,
                    last_timestamp=conv.updated_at,
                )
            )
        return summaries

    def count_scope(self, scope_key: str) -> int:
        """Return the number of stored messages in a scope."""
        return self.db.execute(
            select(func.count()).select_from(ChatMessage).where(ChatMessage.scope_key == scope_key)
        ).scalar_one()

    # --- helpers ------------------------------------------------------------------

    def _prepare_content(self, content: str) -> str:
        if content is None or not content.strip():
            raise InvalidArgumentError("Message content must not be empty")
        if len(content) > self.max_length:
            raise InvalidArgumentError(
                f"Message content exceeds {self.max_length} characters"
            )
        try:
            content.encode("utf-8")
        except UnicodeEncodeError as exc:
            raise InvalidArgumentError("Message content is not valid text") from exc
        return self.codec.encode(content)

    def _lock_scope(
        self,
        scope_key: str,
        participant_a: str | None,
        participant_b: str | None,
    ) -> Conversation:
        """Return the scope's conversation row, locked for this transaction."""
        stmt = select(Conversation).where(Conversation.id == scope_key).with_for_update()
        conversation = self.db.scalars(stmt).first()
        if conversation is not None:
            return conversation

        values = {
            "id": scope_key,
            "participant_a": participant_a,
            "participant_b": participant_b,
            "updated_at": utcnow(),
        }
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            self.db.execute(
                pg_insert(Conversation).values(**values).on_conflict_do_nothing(index_elements=["id"])
            )
        elif dialect == "sqlite":
            self.db.execute(
                sqlite_insert(Conversation).values(**values).on_conflict_do_nothing(index_elements=["id"])
            )
        else:
            try:
                with self.db.begin_nested():
                    self.db.add(Conversation(**values))
            except IntegrityError:
                # Another request created the scope first; use theirs.
                logger.debug("Conversation %s created concurrently", scope_key)
        return self.db.scalars(stmt).one()

    def _commit_message(self, message: ChatMessage) -> ChatMessage:
        message.created_at = utcnow()
        self.db.add(message)
        self.db.flush()

        conversation = self.db.get(Conversation, message.scope_key)
        if conversation is not None:
            conversation.last_message_preview = message.content
            conversation.updated_at = message.created_at

        self.trim_retention(message.scope_key)
        self.db.commit()
        self.db.refresh(message)
        return message

    def _list_scope(self, scope_key: str, limit: int | None) -> list[ChatMessage]:
        size = min(limit or settings.chat_history_limit, self.retention_limit)
        if size <= 0:
            raise InvalidArgumentError("Limit must be positive")
        try:
            rows = self.db.scalars(
                select(ChatMessage)
                .where(ChatMessage.scope_key == scope_key)
                .order_by(ChatMessage.id.desc())
                .limit(size)
            ).all()
        except SQLAlchemyError as exc:
            raise UnavailableError("Message store unavailable") from exc
        return list(reversed(rows))

    def _profile_from_history(self, scope_key: str, peer_id: str) -> PeerProfile:
        message = self.db.scalars(
            select(ChatMessage)
            .where(ChatMessage.scope_key == scope_key)
            .order_by(ChatMessage.id.desc())
            .limit(1)
        ).first()
        if message is None:
            return PeerProfile(id=peer_id, email=None, username=None)
        if message.sender_id == peer_id:
            return PeerProfile(id=peer_id, email=message.sender_email, username=message.sender_username)
        return PeerProfile(id=peer_id, email=message.receiver_email, username=message.receiver_username)

    def _unavailable(self, what: str, exc: SQLAlchemyError) -> UnavailableError:
        self.db.rollback()
        logger.error("Failed to store %s: %s", what, exc)
        return UnavailableError("Message store unavailable")
