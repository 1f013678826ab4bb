"""Pydantic schemas for request/response validation."""

from .chat import ConversationSummaryResponse, MessageCreate, MessageResponse, PeerProfileResponse
from .system import ClientConfigResponse
from .ticket import TicketCreate, TicketResponse
from .user import (
    DetailResponse,
    EmailRequest,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    ResetPasswordRequest,
    UserResponse,
    UsernameUpdateRequest,
    UserSearchResult,
)

__all__ = [
    "MessageCreate",
    "MessageResponse",
    "PeerProfileResponse",
    "ConversationSummaryResponse",
    "ClientConfigResponse",
    "TicketCreate",
    "TicketResponse",
    "DetailResponse",
    "EmailRequest",
    "LoginRequest",
    "LoginResponse",
    "RegisterRequest",
    "ResetPasswordRequest",
    "UserResponse",
    "UsernameUpdateRequest",
    "UserSearchResult",
]
