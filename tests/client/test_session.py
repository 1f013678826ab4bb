# tests/client/test_session.py
"""End-to-end tests for the chat session against the app."""

import pytest
from fastapi.testclient import TestClient

from chatdesk.client import ChatSendError, ChatSession
from chatdesk.client.view import PUBLIC_KEY, STATUS_FAILED, STATUS_SENT
from chatdesk.models import User
from tests.conftest import auth_headers


def _session(client: TestClient, user: User) -> ChatSession:
    token = auth_headers(user)["Authorization"].removeprefix("Bearer ")
    return ChatSession(client, token)


def test_open_requires_config_and_subscription(client: TestClient, alice: User) -> None:
    session = _session(client, alice)
    with pytest.raises(RuntimeError):
        session.on_subscribed()

    session.load_config()
    assert session.self_id == alice.id
    with pytest.raises(RuntimeError):
        session.open()


def test_sent_message_appears_once_with_realtime_echo(client: TestClient, alice: User) -> None:
    session = _session(client, alice)
    session.load_config()
    token = session.headers["Authorization"].removeprefix("Bearer ")

    with client.websocket_connect(f"/api/chat/ws?token={token}") as ws:
        assert ws.receive_json()["type"] == "subscribed"
        session.on_subscribed()
        view = session.open()

        item = session.send("hello everyone")
        session.handle_event(ws.receive_json())

    assert item.status == STATUS_SENT
    assert [entry.text for entry in view.transcript] == ["hello everyone"]
    assert view.entries[PUBLIC_KEY].last_message == "hello everyone"


def test_private_chat_from_search(client: TestClient, alice: User, bob: User, bob_headers) -> None:
    client.post("/api/chat/messages", json={"content": "earlier", "receiverId": alice.id}, headers=bob_headers)

    session = _session(client, alice)
    session.load_config()
    session.on_subscribed()
    session.open()

    assert bob.id in session.view.entries
    results = session.search("bob")
    view = session.start_private_chat(results[0])

    assert view.active_key == bob.id
    assert [entry.text for entry in view.transcript] == ["earlier"]

    session.send("later")
    assert [entry.text for entry in view.transcript] == ["earlier", "later"]

    view = session.switch_chat(PUBLIC_KEY)
    assert view.transcript == []


def test_failed_send_keeps_text(client: TestClient, alice: User) -> None:
    session = _session(client, alice)
    session.load_config()
    session.on_subscribed()
    view = session.open()

    view.select_search_result({"id": "7a1f6c1e-0000-4000-8000-00000000dead", "username": "gone"})
    view.load_history([])

    with pytest.raises(ChatSendError) as exc_info:
        session.send("into the void")

    assert exc_info.value.text == "into the void"
    assert view.transcript[-1].status == STATUS_FAILED


def test_non_insert_frames_are_ignored(client: TestClient, alice: User) -> None:
    session = _session(client, alice)
    session.load_config()
    assert session.handle_event({"type": "subscribed", "table": "chat_message"}) is None
