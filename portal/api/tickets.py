"""Support ticket routes: user submission and admin listing."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from portal.api.auth import get_current_identity, require_admin
from portal.core.config import get_settings
from portal.core.database import get_db
from portal.core.errors import InternalServiceError
from portal.core.providers import get_identity_provider, get_mailer
from portal.schemas.ticket import TicketCreate, TicketOut, TicketSubmitResponse, TicketWithOwner
from portal.services import tickets as ticket_service
from portal.services.identity import IdentityProviderError, IdentityUser, SupabaseIdentityProvider
from portal.services.mailer import MailerError, ResendMailer

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", response_model=TicketSubmitResponse)
async def submit_ticket(
    body: TicketCreate,
    db: Annotated[Session, Depends(get_db)],
    user: Annotated[IdentityUser, Depends(get_current_identity)],
    mailer: Annotated[ResendMailer, Depends(get_mailer)],
) -> TicketSubmitResponse:
    """
    Submit a ticket as the authenticated user.

    A confirmation email goes to the user's registered address; if it cannot
    be sent the ticket is not kept and the request fails with 500.
    """
    try:
        ticket = await ticket_service.submit_ticket(
            db, mailer, get_settings(), user, body.subject, body.message
        )
    except MailerError as e:
        logger.exception("/api/tickets[POST] failed: %s", e.message)
        raise InternalServiceError() from e
    return TicketSubmitResponse(message="工单提交成功！", ticket=TicketOut.model_validate(ticket))


@router.get("", response_model=list[TicketWithOwner])
async def list_tickets(
    _admin: Annotated[IdentityUser, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
    identity: Annotated[SupabaseIdentityProvider, Depends(get_identity_provider)],
) -> list[TicketWithOwner]:
    """All tickets, newest first, with each owner's name and email (admin only)."""
    try:
        return await ticket_service.list_tickets_with_owners(db, identity)
    except IdentityProviderError as e:
        logger.exception("/api/tickets[GET] failed: %s", e.message)
        raise InternalServiceError("获取工单数据失败") from e
