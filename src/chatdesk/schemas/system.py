"""Public configuration schema."""

from pydantic import BaseModel, ConfigDict, Field


class ClientConfigResponse(BaseModel):
    """Settings a client needs before opening the chat.

    ``chatEncryptionKey`` is omitted when the transform is disabled.
    """

    realtime_endpoint: str = Field(..., alias="realtimeEndpoint")
    realtime_key: str = Field("", alias="realtimeKey")
    chat_encryption_key: str | None = Field(None, alias="chatEncryptionKey")

    model_config = ConfigDict(populate_by_name=True)
