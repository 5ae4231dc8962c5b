"""Pydantic schemas for support tickets."""

from datetime import datetime

from pydantic import BaseModel, Field

SUBJECT_MAX_LENGTH = 255


class TicketCreate(BaseModel):
    """Ticket submission body; emptiness is checked by the service (400)."""

    subject: str | None = None
    message: str | None = None


class TicketOut(BaseModel):
    id: int
    subject: str
    message: str
    user_id: str | None = None
    submitted_at: datetime

    class Config:
        from_attributes = True


class TicketSubmitResponse(BaseModel):
    message: str
    ticket: TicketOut


class TicketWithOwner(TicketOut):
    """Ticket as listed to admins, enriched with the owner's name and email."""

    name: str = Field(..., description="Owner username or a fallback label")
    email: str = Field(..., description="Owner email or N/A")
