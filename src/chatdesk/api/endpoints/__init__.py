"""API endpoint modules."""

from .admin import router as admin_router
from .auth import router as auth_router
from .chat import router as chat_router
from .system import router as system_router
from .tickets import router as tickets_router
from .users import router as users_router

__all__ = [
    "admin_router",
    "auth_router",
    "chat_router",
    "system_router",
    "tickets_router",
    "users_router",
]
