"""HTTP driver for a :class:`ConversationView`."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from chatdesk.client.view import PUBLIC_KEY, ConversationView, TranscriptItem
from chatdesk.services.codec import MessageCodec

logger = logging.getLogger(__name__)


class ChatSendError(RuntimeError):
    """A message could not be sent; ``text`` holds what the user typed."""

    def __init__(self, text: str, detail: str) -> None:
        super().__init__(detail)
        self.text = text


class ChatSession:
    """Signed-in chat session over the REST API.

    The caller owns the realtime connection: call :meth:`on_subscribed` once
    its ``subscribed`` frame arrives and pass each further frame to
    :meth:`handle_event`. History is only fetched after that.

    Args:
        http: Client pointed at the server (``fastapi.testclient.TestClient`` works)
        token: Bearer token from ``/api/auth/login``
        self_id: Id of the signed-in user; fetched from ``/api/users/me`` when omitted
    """

    def __init__(self, http: httpx.Client, token: str, self_id: str | None = None) -> None:
        self.http = http
        self.headers = {"Authorization": f"Bearer {token}"}
        self.self_id = self_id
        self.config: dict[str, Any] = {}
        self.view: ConversationView | None = None

    def load_config(self) -> dict[str, Any]:
        """Fetch the public config and build the view with its obfuscation key."""
        response = self.http.get("/api/config")
        response.raise_for_status()
        self.config = response.json()
        if self.self_id is None:
            me = self.http.get("/api/users/me", headers=self.headers)
            me.raise_for_status()
            self.self_id = me.json()["id"]
        self.view = ConversationView(
            self_id=self.self_id,
            codec=MessageCodec(self.config.get("chatEncryptionKey")),
        )
        return self.config

    def on_subscribed(self) -> None:
        self._require_view().mark_subscribed()

    def handle_event(self, event: dict[str, Any]) -> str | None:
        """Apply one realtime frame; returns the affected conversation key."""
        if event.get("type") != "INSERT":
            return None
        return self._require_view().handle_realtime_message(event["record"])

    def open(self) -> ConversationView:
        """Load the conversation list and the active conversation's history."""
        view = self._require_view()
        if not view.subscribed:
            raise RuntimeError("Realtime subscription must be live before opening the chat")
        response = self.http.get("/api/chat/conversations", headers=self.headers)
        response.raise_for_status()
        view.load_conversations(response.json())
        view.load_history(self._fetch_history(view.active_key))
        return view

    def switch_chat(self, key: str) -> ConversationView:
        view = self._require_view()
        view.switch_chat(key)
        view.load_history(self._fetch_history(key))
        return view

    def search(self, query: str) -> list[dict[str, Any]]:
        response = self.http.get(
            "/api/users/search", params={"q": query}, headers=self.headers
        )
        response.raise_for_status()
        return response.json()

    def start_private_chat(self, user: dict[str, Any]) -> ConversationView:
        """Open the conversation with a user picked from :meth:`search`."""
        view = self._require_view()
        key = view.select_search_result(user)
        view.load_history(self._fetch_history(key))
        return view

    def send(self, text: str) -> TranscriptItem:
        """Send ``text`` to the active conversation.

        Raises:
            ChatSendError: If the server rejected the message or could not be reached
        """
        view = self._require_view()
        item = view.begin_send(text)
        payload: dict[str, Any] = {"content": text}
        if view.active_receiver_id is not None:
            payload["receiverId"] = view.active_receiver_id
        try:
            response = self.http.post("/api/chat/messages", json=payload, headers=self.headers)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            restored = view.fail_send(item.local_id or "")
            logger.warning("Sending message failed: %s", exc)
            raise ChatSendError(restored, str(exc)) from exc
        return view.confirm_send(item.local_id or "", response.json())

    def _fetch_history(self, key: str) -> list[dict[str, Any]]:
        path = "/api/chat/public" if key == PUBLIC_KEY else f"/api/chat/private/{key}"
        response = self.http.get(path, headers=self.headers)
        response.raise_for_status()
        return response.json()

    def _require_view(self) -> ConversationView:
        if self.view is None:
            raise RuntimeError("Call load_config() first")
        return self.view
