# tests/api/test_realtime_ws.py
"""Tests for the realtime websocket feed."""

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from chatdesk.models import User
from tests.conftest import auth_headers


def _token(user: User) -> str:
    return auth_headers(user)["Authorization"].removeprefix("Bearer ")


def test_connection_is_acknowledged(client: TestClient, alice: User) -> None:
    with client.websocket_connect(f"/api/chat/ws?token={_token(alice)}") as ws:
        assert ws.receive_json() == {"type": "subscribed", "table": "chat_message"}


def test_invalid_token_is_rejected(client: TestClient) -> None:
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/api/chat/ws?token=garbage") as ws:
            ws.receive_json()
    assert exc_info.value.code == 1008


def test_missing_token_is_rejected(client: TestClient) -> None:
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/api/chat/ws") as ws:
            ws.receive_json()


def test_public_insert_is_pushed(client: TestClient, alice: User, bob: User, bob_headers) -> None:
    with client.websocket_connect(f"/api/chat/ws?token={_token(alice)}") as ws:
        ws.receive_json()
        created = client.post("/api/chat/messages", json={"content": "hello"}, headers=bob_headers).json()

        event = ws.receive_json()

    assert event["table"] == "chat_message"
    assert event["type"] == "INSERT"
    assert event["record"]["id"] == created["id"]
    assert event["record"]["sender_id"] == bob.id
    assert event["record"]["content"] == created["content"]


def test_private_insert_reaches_only_participants(
    client: TestClient,
    alice: User,
    bob: User,
    carol: User,
    alice_headers,
) -> None:
    with client.websocket_connect(f"/api/chat/ws?token={_token(carol)}") as carol_ws:
        carol_ws.receive_json()
        with client.websocket_connect(f"/api/chat/ws?token={_token(bob)}") as bob_ws:
            bob_ws.receive_json()

            client.post(
                "/api/chat/messages",
                json={"content": "psst", "receiverId": bob.id},
                headers=alice_headers,
            )
            client.post("/api/chat/messages", json={"content": "everyone"}, headers=alice_headers)

            private = bob_ws.receive_json()
            assert private["record"]["receiver_id"] == bob.id
            assert bob_ws.receive_json()["record"]["receiver_id"] is None

        # The private insert was filtered out, so the public one comes first.
        assert carol_ws.receive_json()["record"]["receiver_id"] is None
