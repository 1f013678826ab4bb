"""Support ticket Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class TicketCreate(BaseModel):
    """Schema for opening a support ticket."""

    subject: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=5000)


class TicketResponse(BaseModel):
    """Ticket information returned by the API."""

    id: int
    user_id: str
    user_email: str
    subject: str
    message: str
    status: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
