# tests/services/test_realtime.py
"""Tests for the realtime fan-out brokers."""

import asyncio
import threading
from unittest.mock import AsyncMock

import pytest

from chatdesk.services import realtime
from chatdesk.services.realtime import InMemoryBroker, RealtimeEvent, publish_safely


def _event(n: int, table: str = "chat_message") -> RealtimeEvent:
    return RealtimeEvent(table=table, type="INSERT", record={"id": n, "content": f"m{n}"})


def test_event_json_round_trip() -> None:
    event = _event(7)
    assert RealtimeEvent.from_json(event.to_json()) == event
    assert RealtimeEvent.from_json(event.to_json().encode()) == event


@pytest.mark.asyncio
async def test_subscribers_receive_events_in_publish_order() -> None:
    broker = InMemoryBroker()
    async with broker.subscribe("chat_message") as first, broker.subscribe("chat_message") as second:
        for n in range(3):
            await broker.publish(_event(n))

        for subscription in (first, second):
            received = [await asyncio.wait_for(subscription.get(), 1) for _ in range(3)]
            assert [event.record["id"] for event in received] == [0, 1, 2]


@pytest.mark.asyncio
async def test_subscription_is_filtered_by_table() -> None:
    broker = InMemoryBroker()
    async with broker.subscribe("chat_message") as subscription:
        await broker.publish(_event(1, table="ticket"))
        await broker.publish(_event(2))
        event = await asyncio.wait_for(subscription.get(), 1)
    assert event.record["id"] == 2


@pytest.mark.asyncio
async def test_leaving_the_context_unsubscribes() -> None:
    broker = InMemoryBroker()
    async with broker.subscribe("chat_message"):
        assert broker.subscriber_count == 1
    assert broker.subscriber_count == 0
    await broker.publish(_event(1))


@pytest.mark.asyncio
async def test_publish_from_another_thread_is_delivered() -> None:
    broker = InMemoryBroker()
    async with broker.subscribe("chat_message") as subscription:
        thread = threading.Thread(target=lambda: asyncio.run(broker.publish(_event(9))))
        thread.start()
        thread.join()
        event = await asyncio.wait_for(subscription.get(), 1)
    assert event.record["id"] == 9


@pytest.mark.asyncio
async def test_async_iteration_yields_events() -> None:
    broker = InMemoryBroker()
    async with broker.subscribe("chat_message") as subscription:
        await broker.publish(_event(1))
        await broker.publish(_event(2))
        seen = []
        async for event in subscription:
            seen.append(event.record["id"])
            if len(seen) == 2:
                break
    assert seen == [1, 2]


@pytest.mark.asyncio
async def test_publish_safely_swallows_failures(caplog: pytest.LogCaptureFixture) -> None:
    broker = AsyncMock()
    broker.publish.side_effect = ConnectionError("redis down")

    assert await publish_safely(broker, _event(1)) is False
    assert "Realtime publish failed" in caplog.text


@pytest.mark.asyncio
async def test_publish_safely_reports_success() -> None:
    broker = InMemoryBroker()
    assert await publish_safely(broker, _event(1)) is True


@pytest.mark.asyncio
async def test_process_broker_defaults_to_memory(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(realtime, "_broker", None)
    monkeypatch.setattr(realtime.settings, "redis_url", None)

    broker = realtime.get_realtime_broker()
    assert isinstance(broker, InMemoryBroker)
    assert realtime.get_realtime_broker() is broker

    await realtime.close_realtime_broker()
    assert realtime._broker is None
