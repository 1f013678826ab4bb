"""Chat endpoints: public room, private conversations and realtime feed."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from chatdesk.api.dependencies import (
    BrokerDep,
    CurrentUserDep,
    MessageStoreDep,
    SessionDep,
    authenticate_token,
    http_error,
)
from chatdesk.core.errors import ServiceError
from chatdesk.models import ChatMessage
from chatdesk.schemas.chat import ConversationSummaryResponse, MessageCreate, MessageResponse
from chatdesk.services.realtime import RealtimeEvent, Subscription, publish_safely

# Configure logger for this module
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])

MESSAGE_TABLE = ChatMessage.__tablename__
INSERT_EVENT = "INSERT"


def is_visible_to(record: dict[str, Any], user_id: str) -> bool:
    """Return True if ``user_id`` may see the message ``record``."""
    receiver_id = record.get("receiver_id")
    if receiver_id is None:
        return True
    return user_id in (record.get("sender_id"), receiver_id)


@router.post("/messages", status_code=status.HTTP_201_CREATED, response_model=MessageResponse)
async def send_message(
    payload: MessageCreate,
    current_user: CurrentUserDep,
    store: MessageStoreDep,
    broker: BrokerDep,
) -> MessageResponse:
    """Store a public or private message and publish it to subscribers."""
    try:
        if payload.receiver_id is not None:
            message = store.append_private_message(
                current_user.id,
                current_user.email,
                current_user.username,
                payload.receiver_id,
                payload.content,
            )
        else:
            message = store.append_public_message(
                current_user.id,
                current_user.email,
                current_user.username,
                payload.content,
            )
    except ServiceError as err:
        raise http_error(err) from err

    response = MessageResponse.model_validate(message)
    await publish_safely(
        broker,
        RealtimeEvent(table=MESSAGE_TABLE, type=INSERT_EVENT, record=response.model_dump(mode="json")),
    )
    return response


@router.get("/public", response_model=list[MessageResponse])
async def get_public_messages(
    current_user: CurrentUserDep,
    store: MessageStoreDep,
    limit: int | None = Query(None, ge=1, le=500),
) -> list[MessageResponse]:
    """Return the newest public messages, oldest first."""
    try:
        messages = store.list_public_messages(limit)
    except ServiceError as err:
        raise http_error(err) from err
    return [MessageResponse.model_validate(message) for message in messages]


@router.get("/private/{peer_id}", response_model=list[MessageResponse])
async def get_private_messages(
    peer_id: str,
    current_user: CurrentUserDep,
    store: MessageStoreDep,
    limit: int | None = Query(None, ge=1, le=500),
) -> list[MessageResponse]:
    """Return the caller's conversation with ``peer_id``, oldest first."""
    try:
        messages = store.list_private_messages(current_user.id, peer_id, limit)
    except ServiceError as err:
        raise http_error(err) from err
    return [MessageResponse.model_validate(message) for message in messages]


@router.get("/conversations", response_model=list[ConversationSummaryResponse])
async def get_conversations(
    current_user: CurrentUserDep,
    store: MessageStoreDep,
) -> list[ConversationSummaryResponse]:
    """Return one summary per peer, most recent first."""
    try:
        summaries = store.list_recent_conversations(current_user.id)
    except ServiceError as err:
        raise http_error(err) from err
    return [ConversationSummaryResponse.model_validate(summary) for summary in summaries]


async def _forward_events(websocket: WebSocket, subscription: Subscription, user_id: str) -> None:
    async for event in subscription:
        if event.type == INSERT_EVENT and is_visible_to(event.record, user_id):
            await websocket.send_text(event.to_json())


@router.websocket("/ws")
async def realtime_feed(
    websocket: WebSocket,
    db: SessionDep,
    broker: BrokerDep,
    token: str | None = Query(None),
) -> None:
    """Stream message inserts visible to the caller.

    The first frame is ``{"type": "subscribed"}``; history fetched after it
    cannot miss a message, since the subscription is already live.
    """
    try:
        user = authenticate_token(db, token)
    except ServiceError as err:
        logger.info("Rejected realtime connection: %s", err)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    async with broker.subscribe(MESSAGE_TABLE) as subscription:
        await websocket.send_json({"type": "subscribed", "table": MESSAGE_TABLE})
        forwarder = asyncio.create_task(_forward_events(websocket, subscription, user.id))
        try:
            while True:
                # Inbound frames are ignored; receiving detects the disconnect.
                await websocket.receive_text()
        except WebSocketDisconnect:
            logger.debug("Realtime client %s disconnected", user.id)
        finally:
            forwarder.cancel()
            await asyncio.gather(forwarder, return_exceptions=True)
