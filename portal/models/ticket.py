"""ORM model for support tickets."""

from sqlalchemy import Column, DateTime, Integer, String, Text, func

from portal.models.base import Base


class Ticket(Base):
    """Support ticket submitted by a user. Never updated after creation."""

    __tablename__ = "tickets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    subject = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    # Identity-provider user id; nullable for anonymous tickets
    user_id = Column(String(64), nullable=True, index=True)
    submitted_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        index=True,
    )
