"""Support ticket endpoints."""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, status

from chatdesk.api.dependencies import CurrentUserDep, MailerDep, SessionDep, http_error
from chatdesk.core.errors import ServiceError
from chatdesk.core.settings import settings
from chatdesk.schemas.ticket import TicketCreate, TicketResponse
from chatdesk.services import ticket_service
from chatdesk.services.mailer import ticket_notification_email

router = APIRouter(prefix="/tickets", tags=["tickets"])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=TicketResponse)
async def create_ticket(
    payload: TicketCreate,
    background_tasks: BackgroundTasks,
    current_user: CurrentUserDep,
    db: SessionDep,
    mailer: MailerDep,
) -> TicketResponse:
    """Open a ticket and notify the administrator by email."""
    try:
        ticket = ticket_service.create_ticket(db, current_user, payload.subject, payload.message)
    except ServiceError as err:
        raise http_error(err) from err

    if settings.admin_email:
        subject, body = ticket_notification_email(ticket.user_email, ticket.subject, ticket.message)
        background_tasks.add_task(mailer.send_in_background, settings.admin_email, subject, body)
    return TicketResponse.model_validate(ticket)


@router.get("", response_model=list[TicketResponse])
async def list_my_tickets(current_user: CurrentUserDep, db: SessionDep) -> list[TicketResponse]:
    """Return the caller's tickets, newest first."""
    tickets = ticket_service.list_tickets_for_user(db, current_user.id)
    return [TicketResponse.model_validate(ticket) for ticket in tickets]
