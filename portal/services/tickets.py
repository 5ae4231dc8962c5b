"""Support tickets: submission with confirmation email, and admin listing with owner info.

Listing is a two-phase fetch-and-join: load the tickets, collect distinct
owner ids, fetch profiles and identity records for all of them at once, then
map each ticket to its owner's name and email in memory.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from portal.core.errors import InputValidationError
from portal.models import Profile, Ticket
from portal.schemas.ticket import SUBJECT_MAX_LENGTH, TicketWithOwner
from portal.services import notifications
from portal.services.mailer import MailerError

if TYPE_CHECKING:
    from portal.core.config import Settings
    from portal.services.identity import IdentityUser, SupabaseIdentityProvider
    from portal.services.mailer import ResendMailer

logger = logging.getLogger(__name__)

ANONYMOUS_NAME = "匿名用户"
UNKNOWN_NAME = "未知用户"
MISSING_EMAIL = "N/A"


async def submit_ticket(
    session: Session,
    mailer: "ResendMailer",
    settings: "Settings",
    user: "IdentityUser",
    subject: str | None,
    message: str | None,
) -> Ticket:
    """
    Persist a ticket for user and email them a confirmation.

    The row and the email succeed or fail together: the row is flushed to get
    its id, the email is sent, and only then is the transaction committed.
    """
    subject = (subject or "").strip()
    message = (message or "").strip()
    if not subject or not message:
        raise InputValidationError("主题和内容不能为空")
    if len(subject) > SUBJECT_MAX_LENGTH:
        raise InputValidationError(f"主题不能超过 {SUBJECT_MAX_LENGTH} 个字符")

    ticket = Ticket(subject=subject, message=message, user_id=user.id)
    session.add(ticket)
    session.flush()

    if user.email:
        try:
            await notifications.send_ticket_received(
                mailer, settings, user.email, ticket.id, user.username
            )
        except MailerError:
            session.rollback()
            raise
    else:
        logger.warning("Ticket owner has no email; confirmation skipped", extra={"user_id": user.id})

    session.commit()
    session.refresh(ticket)
    logger.info("Ticket submitted", extra={"ticket_id": ticket.id})
    return ticket


def collect_owner_ids(tickets: Iterable[Ticket]) -> set[str]:
    return {t.user_id for t in tickets if t.user_id}


async def fetch_ticket_owners(
    session: Session,
    identity: "SupabaseIdentityProvider",
    owner_ids: set[str],
) -> tuple[dict[str, str], dict[str, "IdentityUser"]]:
    """Fetch usernames (profiles) and identity records for all owner ids in bulk."""
    if not owner_ids:
        return {}, {}
    profiles = session.query(Profile).filter(Profile.id.in_(owner_ids)).all()
    usernames_by_id = {p.id: p.username for p in profiles}
    users_by_id = await identity.get_users_by_ids(owner_ids)
    return usernames_by_id, users_by_id


def join_ticket_owners(
    tickets: Iterable[Ticket],
    usernames_by_id: dict[str, str],
    users_by_id: dict[str, "IdentityUser"],
) -> list[TicketWithOwner]:
    """
    Attach owner name and email to each ticket.

    No owner, or no identity record for the owner: anonymous name and N/A.
    Identity record without a profile: unknown name, identity email.
    """
    joined: list[TicketWithOwner] = []
    for ticket in tickets:
        user = users_by_id.get(ticket.user_id) if ticket.user_id else None
        if user is None:
            name, email = ANONYMOUS_NAME, MISSING_EMAIL
        else:
            name = usernames_by_id.get(user.id) or UNKNOWN_NAME
            email = user.email or MISSING_EMAIL
        joined.append(
            TicketWithOwner(
                id=ticket.id,
                subject=ticket.subject,
                message=ticket.message,
                user_id=ticket.user_id,
                submitted_at=ticket.submitted_at,
                name=name,
                email=email,
            )
        )
    return joined


async def list_tickets_with_owners(
    session: Session,
    identity: "SupabaseIdentityProvider",
) -> list[TicketWithOwner]:
    """All tickets, newest first, each with its owner's name and email."""
    tickets = session.query(Ticket).order_by(Ticket.submitted_at.desc(), Ticket.id.desc()).all()
    if not tickets:
        return []
    usernames_by_id, users_by_id = await fetch_ticket_owners(
        session, identity, collect_owner_ids(tickets)
    )
    return join_ticket_owners(tickets, usernames_by_id, users_by_id)
