"""Chat-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from chatdesk.db.time import as_utc


class MessageCreate(BaseModel):
    """Schema for posting a chat message.

    Without ``receiverId`` the message goes to the public room.
    """

    content: str = Field(..., description="Plaintext message body")
    receiver_id: str | None = Field(
        None,
        alias="receiverId",
        description="Recipient user id for a private message",
    )

    model_config = ConfigDict(populate_by_name=True)


class MessageResponse(BaseModel):
    """A stored message. ``content`` is in its stored (encoded) form."""

    id: int
    sender_id: str
    sender_email: str
    sender_username: str | None
    receiver_id: str | None
    receiver_email: str | None
    receiver_username: str | None
    content: str
    created_at: datetime

    @field_serializer("created_at")
    def serialize_created_at(self, value: datetime) -> str:
        """Emit timestamps as UTC ISO-8601."""
        return as_utc(value).isoformat()

    model_config = ConfigDict(from_attributes=True)


class PeerProfileResponse(BaseModel):
    """Public identity of a conversation partner."""

    id: str
    email: str | None
    username: str | None

    model_config = ConfigDict(from_attributes=True)


class ConversationSummaryResponse(BaseModel):
    """Newest message of one private conversation."""

    conversation_id: str
    peer_id: str
    peer_profile: PeerProfileResponse
    last_message: str | None = Field(None, description="Encoded body of the newest message")
    last_timestamp: datetime

    @field_serializer("last_timestamp")
    def serialize_last_timestamp(self, value: datetime) -> str:
        """Emit timestamps as UTC ISO-8601."""
        return as_utc(value).isoformat()

    model_config = ConfigDict(from_attributes=True)
