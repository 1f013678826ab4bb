"""Public configuration endpoint."""

from __future__ import annotations

from fastapi import APIRouter

from chatdesk.core.settings import settings
from chatdesk.schemas.system import ClientConfigResponse

router = APIRouter(tags=["system"])


@router.get("/config", response_model=ClientConfigResponse, response_model_exclude_none=True)
async def get_client_config() -> ClientConfigResponse:
    """Return realtime connection details and the shared obfuscation key.

    The key is not a secret: anyone who can call this endpoint can decode
    every stored message body.
    """
    return ClientConfigResponse(
        realtime_endpoint=settings.realtime_endpoint,
        realtime_key=settings.realtime_key or "",
        chat_encryption_key=settings.chat_encryption_key or None,
    )
