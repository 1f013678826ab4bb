"""SQLAlchemy model for user accounts."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from chatdesk.db.session import Base
from chatdesk.db.time import utcnow

ROLE_USER = "user"
ROLE_ADMIN = "admin"


def _new_user_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    """Registered account identified by an opaque UUID string."""

    __tablename__ = "user_account"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_user_id)
    email: Mapped[str] = mapped_column(String(320), unique=True, index=True, nullable=False)
    username: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default=ROLE_USER)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_banned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)

    @property
    def is_admin(self) -> bool:
        """Return True for accounts holding the admin role."""
        return self.role == ROLE_ADMIN

    @property
    def display_name(self) -> str:
        """Return the username, falling back to the email address."""
        return self.username or self.email
