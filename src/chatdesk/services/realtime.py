"""Realtime fan-out of table insert events.

The chat write path publishes one ``INSERT`` event per committed message;
subscribers receive every event for the table they subscribed to, at least
once, in publish order per process. Two backends are provided:

- ``InMemoryBroker``: single-process delivery, used when no Redis is set up.
- ``RedisBroker``: Redis pub/sub, for deployments running several workers.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass, field
from threading import Lock
from typing import Any, Protocol

from redis import asyncio as redis_asyncio

from chatdesk.core.settings import settings

# Configure logger for this module
logger = logging.getLogger(__name__)

CHANNEL_PREFIX = "realtime:"


@dataclass(frozen=True)
class RealtimeEvent:
    """Change notification for one row of a table."""

    table: str
    type: str
    record: dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> str:
        return json.dumps(asdict(self), default=str)

    @classmethod
    def from_json(cls, raw: str | bytes) -> RealtimeEvent:
        data = json.loads(raw)
        return cls(table=data["table"], type=data["type"], record=data.get("record") or {})


class Subscription(Protocol):
    """Async stream of events for a single subscriber."""

    def __aiter__(self) -> AsyncIterator[RealtimeEvent]: ...

    async def get(self) -> RealtimeEvent: ...


class RealtimeBroker(Protocol):
    """Publish/subscribe contract the chat subsystem relies on."""

    async def publish(self, event: RealtimeEvent) -> None: ...

    def subscribe(self, table: str) -> Any: ...

    async def close(self) -> None: ...


class _QueueSubscription:
    """Subscriber queue bound to the event loop that created it."""

    def __init__(self, table: str) -> None:
        self.table = table
        self._loop = asyncio.get_running_loop()
        self._queue: asyncio.Queue[RealtimeEvent] = asyncio.Queue()

    def deliver(self, event: RealtimeEvent) -> None:
        # Publishers may run on another thread or loop.
        self._loop.call_soon_threadsafe(self._queue.put_nowait, event)

    async def get(self) -> RealtimeEvent:
        return await self._queue.get()

    async def __aiter__(self) -> AsyncIterator[RealtimeEvent]:
        while True:
            yield await self._queue.get()


class InMemoryBroker:
    """Process-local broker; subscribers on other instances see nothing."""

    def __init__(self) -> None:
        self._subscribers: dict[str, list[_QueueSubscription]] = {}
        self._lock = Lock()

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return sum(len(subs) for subs in self._subscribers.values())

    async def publish(self, event: RealtimeEvent) -> None:
        with self._lock:
            targets = list(self._subscribers.get(event.table, ()))
        for subscription in targets:
            try:
                subscription.deliver(event)
            except RuntimeError:
                # Subscriber loop already closed; it will be dropped on exit.
                logger.debug("Dropping event for closed subscriber on %s", event.table)

    @asynccontextmanager
    async def subscribe(self, table: str) -> AsyncIterator[_QueueSubscription]:
        subscription = _QueueSubscription(table)
        with self._lock:
            self._subscribers.setdefault(table, []).append(subscription)
        try:
            yield subscription
        finally:
            with self._lock:
                subs = self._subscribers.get(table, [])
                if subscription in subs:
                    subs.remove(subscription)

    async def close(self) -> None:
        with self._lock:
            self._subscribers.clear()


class _RedisSubscription:
    def __init__(self, pubsub: Any) -> None:
        self._pubsub = pubsub

    async def get(self) -> RealtimeEvent:
        while True:
            message = await self._pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
            if message is not None and message.get("type") == "message":
                return RealtimeEvent.from_json(message["data"])

    async def __aiter__(self) -> AsyncIterator[RealtimeEvent]:
        while True:
            yield await self.get()


class RedisBroker:
    """Broker backed by Redis pub/sub, shared by every app instance."""

    def __init__(self, url: str) -> None:
        self._redis = redis_asyncio.from_url(url)

    async def publish(self, event: RealtimeEvent) -> None:
        await self._redis.publish(f"{CHANNEL_PREFIX}{event.table}", event.to_json())

    @asynccontextmanager
    async def subscribe(self, table: str) -> AsyncIterator[_RedisSubscription]:
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(f"{CHANNEL_PREFIX}{table}")
        try:
            yield _RedisSubscription(pubsub)
        finally:
            await pubsub.unsubscribe(f"{CHANNEL_PREFIX}{table}")
            await pubsub.aclose()

    async def close(self) -> None:
        await self._redis.aclose()


_broker: RealtimeBroker | None = None


def get_realtime_broker() -> RealtimeBroker:
    """Return the process-wide broker, creating it on first use."""
    global _broker
    if _broker is None:
        _broker = RedisBroker(settings.redis_url) if settings.redis_url else InMemoryBroker()
    return _broker


async def close_realtime_broker() -> None:
    """Close the process-wide broker if one was created."""
    global _broker
    if _broker is not None:
        broker, _broker = _broker, None
        await broker.close()


async def publish_safely(broker: RealtimeBroker, event: RealtimeEvent) -> bool:
    """Publish ``event`` and log instead of raising on failure.

    The row is already committed when this runs, so a fan-out failure must not
    turn a successful write into an error.
    """
    try:
        await broker.publish(event)
    except Exception as exc:  # noqa: BLE001 - any broker failure is non-fatal here
        logger.warning("Realtime publish failed for %s: %s", event.table, exc)
        return False
    return True
