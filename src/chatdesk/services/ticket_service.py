"""Support tickets submitted by signed-in users."""
from __future__ import annotations

from typing import Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from chatdesk.core.errors import InvalidArgumentError, UnavailableError
from chatdesk.models import Ticket, User


def create_ticket(db: Session, author: User, subject: str, message: str) -> Ticket:
    """Store a new open ticket for ``author``.

    Raises:
        InvalidArgumentError: If subject or message is blank
        UnavailableError: If the ticket could not be stored
    """
    subject = subject.strip()
    message = message.strip()
    if not subject or not message:
        raise InvalidArgumentError("Subject and message are required")

    ticket = Ticket(user_id=author.id, user_email=author.email, subject=subject, message=message)
    db.add(ticket)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise UnavailableError("Could not store ticket") from exc
    db.refresh(ticket)
    return ticket


def list_tickets_for_user(db: Session, user_id: str) -> Sequence[Ticket]:
    """Return the caller's own tickets, newest first."""
    return db.scalars(
        select(Ticket).where(Ticket.user_id == user_id).order_by(Ticket.id.desc())
    ).all()


def list_all_tickets(db: Session) -> Sequence[Ticket]:
    """Return every ticket, newest first (admin view)."""
    return db.scalars(select(Ticket).order_by(Ticket.id.desc())).all()
