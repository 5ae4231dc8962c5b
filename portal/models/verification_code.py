"""ORM model for one-time email verification codes."""

from sqlalchemy import Column, DateTime, Integer, String

from portal.models.base import Base

PURPOSE_SIGNUP = "signup"
PURPOSE_PASSWORD_RESET = "password_reset"
VERIFICATION_PURPOSES = (PURPOSE_SIGNUP, PURPOSE_PASSWORD_RESET)


class VerificationCode(Base):
    """
    A 6-digit code issued to an email for one purpose.

    Only the newest row per (email, purpose), by expiry, is ever accepted.
    Rows are deleted once redeemed.
    """

    __tablename__ = "verification_codes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(320), nullable=False, index=True)
    code = Column(String(6), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    purpose = Column(String(32), nullable=False, default=PURPOSE_SIGNUP)
