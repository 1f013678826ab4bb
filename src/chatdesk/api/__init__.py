"""HTTP API routers."""

from .endpoints import (
    admin_router,
    auth_router,
    chat_router,
    system_router,
    tickets_router,
    users_router,
)

__all__ = [
    "admin_router",
    "auth_router",
    "chat_router",
    "system_router",
    "tickets_router",
    "users_router",
]
