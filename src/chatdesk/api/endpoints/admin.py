"""Administrator console endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from chatdesk.api.dependencies import (
    AdminUserDep,
    ClientAddressDep,
    ExpiringStoreDep,
    SessionDep,
    http_error,
)
from chatdesk.core.errors import ServiceError
from chatdesk.schemas.ticket import TicketResponse
from chatdesk.schemas.user import DetailResponse, LoginRequest, LoginResponse, UserResponse
from chatdesk.services import auth_service, ticket_service, user_service

# Configure logger for this module
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/login", response_model=LoginResponse)
async def admin_login(
    payload: LoginRequest,
    db: SessionDep,
    store: ExpiringStoreDep,
    client_key: ClientAddressDep,
) -> LoginResponse:
    """Log in to the console; only admin accounts are accepted."""
    try:
        user = auth_service.authenticate(
            db,
            store,
            f"admin:{client_key}",
            payload.email,
            payload.password,
            require_admin=True,
        )
    except ServiceError as err:
        raise http_error(err) from err
    return LoginResponse(
        access_token=auth_service.issue_token(user),
        user=UserResponse.model_validate(user),
    )


@router.get("/users", response_model=list[UserResponse])
async def list_users(admin: AdminUserDep, db: SessionDep) -> list[UserResponse]:
    """Return every account, newest first."""
    return [UserResponse.model_validate(user) for user in user_service.list_users(db)]


@router.delete("/users/{user_id}", response_model=DetailResponse)
async def delete_user(user_id: str, admin: AdminUserDep, db: SessionDep) -> DetailResponse:
    """Delete an account with its tickets, messages and conversations."""
    if user_id == admin.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot delete your own account",
        )
    try:
        user_service.delete_user(db, user_id)
    except ServiceError as err:
        raise http_error(err) from err
    logger.info("Admin %s deleted user %s", admin.id, user_id)
    return DetailResponse(message="User deleted")


@router.post("/users/{user_id}/toggle-ban", response_model=UserResponse)
async def toggle_ban(user_id: str, admin: AdminUserDep, db: SessionDep) -> UserResponse:
    """Ban or unban an account."""
    if user_id == admin.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot ban your own account",
        )
    try:
        user = user_service.toggle_ban(db, user_id)
    except ServiceError as err:
        raise http_error(err) from err
    logger.info("Admin %s set banned=%s for user %s", admin.id, user.is_banned, user_id)
    return UserResponse.model_validate(user)


@router.get("/tickets", response_model=list[TicketResponse])
async def list_tickets(admin: AdminUserDep, db: SessionDep) -> list[TicketResponse]:
    """Return every ticket, newest first."""
    return [TicketResponse.model_validate(ticket) for ticket in ticket_service.list_all_tickets(db)]
