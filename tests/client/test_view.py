# tests/client/test_view.py
"""Tests for the client-side conversation state."""

from datetime import UTC, datetime, timedelta

import pytest

from chatdesk.client.view import (
    PUBLIC_KEY,
    STATUS_FAILED,
    STATUS_PENDING,
    STATUS_SENT,
    ConversationView,
)
from chatdesk.services.codec import EMPTY_PLACEHOLDER, MessageCodec

KEY = "view-key"
codec = MessageCodec(KEY)
T0 = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def record(
    message_id: int,
    sender_id: str,
    text: str,
    receiver_id: str | None = None,
    at: datetime = T0,
    **extra,
) -> dict:
    data = {
        "id": message_id,
        "sender_id": sender_id,
        "sender_email": f"{sender_id}@chatdesk.dev",
        "sender_username": sender_id,
        "receiver_id": receiver_id,
        "receiver_email": f"{receiver_id}@chatdesk.dev" if receiver_id else None,
        "receiver_username": receiver_id,
        "content": codec.encode(text),
        "created_at": at.isoformat(),
    }
    data.update(extra)
    return data


@pytest.fixture()
def view() -> ConversationView:
    v = ConversationView(self_id="me", codec=codec)
    v.mark_subscribed()
    v.load_history([])
    return v


def texts(view: ConversationView) -> list[str]:
    return [item.text for item in view.transcript]


def test_new_view_starts_in_public_room() -> None:
    v = ConversationView(self_id="me")
    assert v.active_key == PUBLIC_KEY
    assert [entry.key for entry in v.conversations()] == [PUBLIC_KEY]
    assert v.conversations()[0].title == "Public"
    assert v.active_receiver_id is None


def test_history_requires_subscription() -> None:
    v = ConversationView(self_id="me", codec=codec)
    with pytest.raises(RuntimeError):
        v.load_history([record(1, "bob", "hi")])


def test_load_conversations_decodes_previews() -> None:
    v = ConversationView(self_id="me", codec=codec)
    v.load_conversations(
        [
            {
                "peer_id": "bob",
                "peer_profile": {"id": "bob", "username": "bob", "email": "bob@chatdesk.dev"},
                "last_message": codec.encode("see you"),
                "last_timestamp": T0.isoformat(),
            },
            {
                "peer_id": "carol",
                "peer_profile": {"id": "carol", "username": None, "email": "carol@chatdesk.dev"},
                "last_message": None,
                "last_timestamp": (T0 + timedelta(minutes=1)).isoformat(),
            },
        ]
    )

    entries = v.conversations()
    assert [entry.key for entry in entries] == [PUBLIC_KEY, "carol", "bob"]
    assert entries[1].title == "carol@chatdesk.dev"
    assert entries[1].last_message == EMPTY_PLACEHOLDER
    assert entries[2].last_message == "see you"


def test_history_is_decoded_and_ordered(view: ConversationView) -> None:
    view.load_history(
        [
            record(2, "bob", "second", at=T0 + timedelta(seconds=1)),
            record(1, "bob", "first"),
        ]
    )
    assert texts(view) == ["first", "second"]
    assert all(item.status == STATUS_SENT for item in view.transcript)


def test_realtime_message_in_active_conversation(view: ConversationView) -> None:
    key = view.handle_realtime_message(record(1, "bob", "hello room"))
    assert key == PUBLIC_KEY
    assert texts(view) == ["hello room"]
    assert view.entries[PUBLIC_KEY].last_message == "hello room"


def test_duplicate_realtime_event_is_ignored(view: ConversationView) -> None:
    view.handle_realtime_message(record(1, "bob", "once"))
    view.handle_realtime_message(record(1, "bob", "once"))
    assert texts(view) == ["once"]


def test_private_message_from_new_peer_creates_entry(view: ConversationView) -> None:
    key = view.handle_realtime_message(record(5, "dave", "hey you", receiver_id="me"))

    assert key == "dave"
    entry = view.entries["dave"]
    assert entry.username == "dave"
    assert entry.last_message == "hey you"
    # Not the active conversation, so the transcript is untouched.
    assert view.transcript == []


def test_own_private_message_is_keyed_by_receiver(view: ConversationView) -> None:
    key = view.handle_realtime_message(record(6, "me", "sent elsewhere", receiver_id="erin"))
    assert key == "erin"
    assert view.entries["erin"].email == "erin@chatdesk.dev"


def test_events_before_history_are_buffered_and_merged() -> None:
    v = ConversationView(self_id="me", codec=codec)
    v.mark_subscribed()
    v.handle_realtime_message(record(3, "bob", "during load", at=T0 + timedelta(seconds=3)))
    v.handle_realtime_message(record(2, "bob", "in both", at=T0 + timedelta(seconds=2)))
    assert v.transcript == []

    v.load_history([record(1, "bob", "old"), record(2, "bob", "in both", at=T0 + timedelta(seconds=2))])

    assert texts(v) == ["old", "in both", "during load"]


def test_switch_chat_resets_transcript(view: ConversationView) -> None:
    view.handle_realtime_message(record(1, "bob", "public"))
    view.handle_realtime_message(record(2, "bob", "private", receiver_id="me"))

    view.switch_chat("bob")

    assert view.active_key == "bob"
    assert view.active_receiver_id == "bob"
    assert view.transcript == []
    with pytest.raises(KeyError):
        view.switch_chat("stranger")


def test_search_result_opens_empty_conversation(view: ConversationView) -> None:
    key = view.select_search_result({"id": "zoe", "username": "zoe", "email": "zoe@chatdesk.dev"})
    assert key == "zoe"
    assert view.active_key == "zoe"
    assert view.entries["zoe"].last_message == EMPTY_PLACEHOLDER

    # A refreshed list without zoe keeps the open conversation.
    view.load_conversations([])
    assert "zoe" in view.entries

    with pytest.raises(ValueError):
        view.select_search_result({"id": "me"})


def test_send_then_response_then_realtime_shows_one_message(view: ConversationView) -> None:
    pending = view.begin_send("hi all")
    assert pending.status == STATUS_PENDING
    assert texts(view) == ["hi all"]

    stored = record(10, "me", "hi all", at=pending.created_at)
    confirmed = view.confirm_send(pending.local_id, stored)
    view.handle_realtime_message(stored)

    assert confirmed.id == 10
    assert confirmed.status == STATUS_SENT
    assert texts(view) == ["hi all"]


def test_send_then_realtime_then_response_shows_one_message(view: ConversationView) -> None:
    pending = view.begin_send("hi all")
    stored = record(11, "me", "hi all", at=pending.created_at)

    view.handle_realtime_message(stored)
    assert view.transcript[0].id == 11
    confirmed = view.confirm_send(pending.local_id, stored)

    assert confirmed is pending
    assert texts(view) == ["hi all"]


def test_identical_texts_sent_twice_stay_separate(view: ConversationView) -> None:
    first = view.begin_send("ok")
    second = view.begin_send("ok")

    view.confirm_send(first.local_id, record(20, "me", "ok", at=first.created_at))
    view.confirm_send(second.local_id, record(21, "me", "ok", at=second.created_at))

    assert [item.id for item in view.transcript] == [20, 21]


def test_stale_pending_item_is_not_reconciled(view: ConversationView) -> None:
    pending = view.begin_send("late")
    view.handle_realtime_message(record(30, "me", "late", at=pending.created_at + timedelta(minutes=5)))

    assert pending.status == STATUS_PENDING
    assert len(view.transcript) == 2


def test_failed_send_keeps_item_and_returns_text(view: ConversationView) -> None:
    pending = view.begin_send("lost words")

    assert view.fail_send(pending.local_id) == "lost words"
    assert view.transcript[0].status == STATUS_FAILED
    with pytest.raises(KeyError):
        view.fail_send("unknown")


def test_empty_send_rejected(view: ConversationView) -> None:
    with pytest.raises(ValueError):
        view.begin_send("   ")
    assert view.transcript == []


def test_pending_items_survive_history_reload(view: ConversationView) -> None:
    pending = view.begin_send("in flight")
    view.load_history([record(1, "bob", "old", at=pending.created_at - timedelta(minutes=1))])
    assert texts(view) == ["old", "in flight"]


def test_history_reload_merges_pending_item_with_its_stored_copy(view: ConversationView) -> None:
    pending = view.begin_send("hi")

    view.load_history([record(1, "me", "hi", at=pending.created_at)])

    assert [(item.id, item.text, item.status) for item in view.transcript] == [(1, "hi", STATUS_SENT)]
    assert view.confirm_send(pending.local_id, record(1, "me", "hi", at=pending.created_at)) is pending
    assert len(view.transcript) == 1
