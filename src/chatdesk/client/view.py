"""Client-side conversation state.

``ConversationView`` owns everything a chat UI shows: the conversation list
(one entry per peer plus the public room), the active conversation and its
transcript. It is changed only through its transition methods, which take
the JSON shapes returned by the HTTP API and the realtime feed.

Sending is optimistic: ``begin_send`` shows the text at once as a pending
item. The stored copy arrives twice, as the POST response and as a realtime
event, in either order; both are merged into the pending item instead of
being shown again. A failed send leaves the item in place marked ``failed``.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from chatdesk.services.codec import EMPTY_PLACEHOLDER, MessageCodec

logger = logging.getLogger(__name__)

PUBLIC_KEY = "public"

STATUS_PENDING = "pending"
STATUS_SENT = "sent"
STATUS_FAILED = "failed"

DEFAULT_RECONCILE_WINDOW = timedelta(seconds=30)


def parse_timestamp(value: str | datetime | None) -> datetime:
    """Return an aware UTC datetime from an API timestamp."""
    if value is None:
        return datetime.now(UTC)
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value


@dataclass
class ConversationEntry:
    """One row of the conversation list."""

    key: str
    username: str | None = None
    email: str | None = None
    last_message: str = EMPTY_PLACEHOLDER
    last_timestamp: datetime | None = None

    @property
    def title(self) -> str:
        if self.key == PUBLIC_KEY:
            return "Public"
        return self.username or self.email or self.key


@dataclass
class TranscriptItem:
    """A message as displayed, with plaintext content."""

    sender_id: str
    receiver_id: str | None
    text: str
    created_at: datetime
    id: int | None = None
    status: str = STATUS_SENT
    local_id: str | None = None
    sender_username: str | None = None
    sender_email: str | None = None

    @property
    def sort_key(self) -> tuple[datetime, float]:
        return (self.created_at, float(self.id) if self.id is not None else float("inf"))


@dataclass
class ConversationView:
    """State machine behind one user's chat window.

    Args:
        self_id: Id of the signed-in user
        codec: Decoder for message bodies, built from the published key
        reconcile_window: How far apart an optimistic item and its stored
            copy may be in time and still be merged
    """

    self_id: str
    codec: MessageCodec = field(default_factory=lambda: MessageCodec(None))
    reconcile_window: timedelta = DEFAULT_RECONCILE_WINDOW
    entries: dict[str, ConversationEntry] = field(default_factory=dict)
    active_key: str = PUBLIC_KEY
    transcript: list[TranscriptItem] = field(default_factory=list)
    subscribed: bool = False
    history_loaded: bool = False
    _buffer: list[dict[str, Any]] = field(default_factory=list, repr=False)

    def __post_init__(self) -> None:
        self.entries.setdefault(PUBLIC_KEY, ConversationEntry(key=PUBLIC_KEY))

    # --- queries ------------------------------------------------------------------

    def conversations(self) -> list[ConversationEntry]:
        """Return the public room first, then peers by most recent message."""
        oldest = datetime.min.replace(tzinfo=UTC)
        peers = sorted(
            (entry for key, entry in self.entries.items() if key != PUBLIC_KEY),
            key=lambda entry: entry.last_timestamp or oldest,
            reverse=True,
        )
        return [self.entries[PUBLIC_KEY], *peers]

    def scope_of(self, record: dict[str, Any]) -> str:
        """Return the conversation key a message record belongs to."""
        receiver_id = record.get("receiver_id")
        if receiver_id is None:
            return PUBLIC_KEY
        if record.get("sender_id") == self.self_id:
            return str(receiver_id)
        return str(record["sender_id"])

    @property
    def active_receiver_id(self) -> str | None:
        """Return the receiver for messages sent from the active conversation."""
        return None if self.active_key == PUBLIC_KEY else self.active_key

    # --- transitions --------------------------------------------------------------

    def load_conversations(self, summaries: list[dict[str, Any]]) -> None:
        """Replace the peer entries with summaries from the conversations API."""
        entries = {PUBLIC_KEY: self.entries[PUBLIC_KEY]}
        for summary in summaries:
            profile = summary.get("peer_profile") or {}
            peer_id = summary["peer_id"]
            entries[peer_id] = ConversationEntry(
                key=peer_id,
                username=profile.get("username"),
                email=profile.get("email"),
                last_message=self.codec.decode(summary.get("last_message") or EMPTY_PLACEHOLDER),
                last_timestamp=parse_timestamp(summary.get("last_timestamp")),
            )
        # Keep a conversation opened from search even if it has no messages yet.
        active = self.entries.get(self.active_key)
        if active is not None and self.active_key not in entries:
            entries[self.active_key] = active
        self.entries = entries

    def switch_chat(self, key: str) -> None:
        """Make ``key`` the active conversation; its history must be reloaded."""
        if key not in self.entries:
            raise KeyError(f"Unknown conversation: {key}")
        self.active_key = key
        self.transcript = []
        self.history_loaded = False
        self._buffer = []

    def select_search_result(self, user: dict[str, Any]) -> str:
        """Open (creating if needed) the conversation with a searched user."""
        peer_id = str(user["id"])
        if peer_id == self.self_id:
            raise ValueError("Cannot start a conversation with yourself")
        if peer_id not in self.entries:
            self.entries[peer_id] = ConversationEntry(
                key=peer_id,
                username=user.get("username"),
                email=user.get("email"),
            )
        self.switch_chat(peer_id)
        return peer_id

    def mark_subscribed(self) -> None:
        """Record that the realtime subscription is live."""
        self.subscribed = True

    def load_history(self, records: list[dict[str, Any]]) -> None:
        """Install the history snapshot of the active conversation.

        Realtime events received while the snapshot was in flight are merged
        in afterwards, so nothing between the two is lost or doubled.

        Raises:
            RuntimeError: If the realtime subscription is not live yet
        """
        if not self.subscribed:
            raise RuntimeError("Subscribe to realtime events before loading history")
        # Unconfirmed items go first so a stored copy in the snapshot merges into them.
        self.transcript = [item for item in self.transcript if item.id is None]
        for record in records:
            self._merge(self._to_item(record))
        buffered, self._buffer = self._buffer, []
        for record in buffered:
            self._merge(self._to_item(record))
        self.transcript.sort(key=lambda item: item.sort_key)
        self.history_loaded = True

    def handle_realtime_message(self, record: dict[str, Any]) -> str:
        """Apply a message insert event and return the conversation it belongs to."""
        key = self.scope_of(record)
        item = self._to_item(record)

        entry = self.entries.get(key)
        if entry is None:
            entry = self._entry_from_record(key, record)
            self.entries[key] = entry
            logger.debug("New conversation with %s", key)
        entry.last_message = item.text
        entry.last_timestamp = item.created_at

        if key == self.active_key:
            if self.history_loaded:
                self._merge(item)
            else:
                self._buffer.append(record)
        return key

    def begin_send(self, text: str) -> TranscriptItem:
        """Show ``text`` in the active conversation before the server confirms it."""
        if not text or not text.strip():
            raise ValueError("Message must not be empty")
        item = TranscriptItem(
            sender_id=self.self_id,
            receiver_id=self.active_receiver_id,
            text=text,
            created_at=datetime.now(UTC),
            status=STATUS_PENDING,
            local_id=uuid.uuid4().hex,
        )
        self.transcript.append(item)
        return item

    def confirm_send(self, local_id: str, record: dict[str, Any]) -> TranscriptItem:
        """Attach the stored message returned by the server to a pending item."""
        stored = self._to_item(record)
        key = self.scope_of(record)
        entry = self.entries.get(key)
        if entry is not None:
            entry.last_message = stored.text
            entry.last_timestamp = stored.created_at

        pending = self._find_local(local_id)
        if pending is None:
            # Conversation switched meanwhile; the server copy is authoritative.
            return stored
        if pending.id == stored.id:
            # Already reconciled with the realtime copy.
            return pending
        if any(item.id == stored.id for item in self.transcript):
            # The realtime copy arrived first and was shown separately.
            self.transcript.remove(pending)
            return stored
        pending.id = stored.id
        pending.created_at = stored.created_at
        pending.status = STATUS_SENT
        self.transcript.sort(key=lambda item: item.sort_key)
        return pending

    def fail_send(self, local_id: str) -> str:
        """Mark a pending item as failed and return its text for the input field."""
        item = self._find_local(local_id)
        if item is None:
            raise KeyError(f"Unknown pending message: {local_id}")
        item.status = STATUS_FAILED
        return item.text

    # --- helpers ------------------------------------------------------------------

    def _to_item(self, record: dict[str, Any]) -> TranscriptItem:
        return TranscriptItem(
            id=record.get("id"),
            sender_id=record["sender_id"],
            receiver_id=record.get("receiver_id"),
            text=self.codec.decode(record.get("content") or ""),
            created_at=parse_timestamp(record.get("created_at")),
            sender_username=record.get("sender_username"),
            sender_email=record.get("sender_email"),
        )

    def _entry_from_record(self, key: str, record: dict[str, Any]) -> ConversationEntry:
        if record.get("sender_id") == key:
            return ConversationEntry(
                key=key,
                username=record.get("sender_username"),
                email=record.get("sender_email"),
            )
        return ConversationEntry(
            key=key,
            username=record.get("receiver_username"),
            email=record.get("receiver_email"),
        )

    def _find_local(self, local_id: str) -> TranscriptItem | None:
        for item in self.transcript:
            if item.local_id == local_id:
                return item
        return None

    def _merge(self, incoming: TranscriptItem) -> None:
        if incoming.id is not None and any(item.id == incoming.id for item in self.transcript):
            return
        for item in self.transcript:
            if (
                item.status == STATUS_PENDING
                and item.id is None
                and item.sender_id == incoming.sender_id
                and item.text == incoming.text
                and abs(item.created_at - incoming.created_at) <= self.reconcile_window
            ):
                item.id = incoming.id
                item.created_at = incoming.created_at
                item.status = STATUS_SENT
                break
        else:
            self.transcript.append(incoming)
        self.transcript.sort(key=lambda item: item.sort_key)
