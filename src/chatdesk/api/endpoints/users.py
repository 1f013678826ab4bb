"""User lookup and profile endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Query

from chatdesk.api.dependencies import CurrentUserDep, SessionDep, http_error
from chatdesk.core.errors import ServiceError
from chatdesk.schemas.user import UsernameUpdateRequest, UserResponse, UserSearchResult
from chatdesk.services import user_service

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/search", response_model=list[UserSearchResult])
async def search_users(
    current_user: CurrentUserDep,
    db: SessionDep,
    q: str = Query("", description="Part of a username or email, at least two characters"),
) -> list[UserSearchResult]:
    """Find people to start a private conversation with."""
    try:
        users = user_service.search_users(db, q, exclude_id=current_user.id)
    except ServiceError as err:
        raise http_error(err) from err
    return [UserSearchResult.model_validate(user) for user in users]


@router.get("/me", response_model=UserResponse)
async def read_me(current_user: CurrentUserDep) -> UserResponse:
    """Return the caller's account."""
    return UserResponse.model_validate(current_user)


@router.put("/me/username", response_model=UserResponse)
async def update_username(
    payload: UsernameUpdateRequest,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> UserResponse:
    """Change the caller's username."""
    try:
        user = user_service.set_username(db, current_user, payload.username)
    except ServiceError as err:
        raise http_error(err) from err
    return UserResponse.model_validate(user)
