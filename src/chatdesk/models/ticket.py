"""Support ticket model."""

from datetime import datetime

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from chatdesk.db.session import Base
from chatdesk.db.time import utcnow

TICKET_STATUS_OPEN = "open"


class Ticket(Base):
    """Append-only support request submitted by a signed-in user."""

    __tablename__ = "ticket"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("user_account.id", ondelete="CASCADE"), index=True, nullable=False
    )
    user_email: Mapped[str] = mapped_column(String(320), nullable=False)
    subject: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=TICKET_STATUS_OPEN)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)
