"""One-time email verification codes: issue, validate and redeem.

A code is scoped to (email, purpose). Lookups always take the newest row by
expiry, so issuing a fresh code silently supersedes any older one. Redeeming
runs the caller's side effect first and deletes the row only once that
succeeded, so a code can never be replayed after use.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, TypeVar

from sqlalchemy.orm import Session

from portal.core.errors import DuplicateAccountError, InvalidOrExpiredCodeError
from portal.models.verification_code import (
    PURPOSE_PASSWORD_RESET,
    PURPOSE_SIGNUP,
    VERIFICATION_PURPOSES,
    VerificationCode,
)
from portal.services import notifications

if TYPE_CHECKING:
    from portal.core.config import Settings
    from portal.services.identity import SupabaseIdentityProvider
    from portal.services.mailer import ResendMailer

logger = logging.getLogger(__name__)

T = TypeVar("T")

CODE_MIN = 100000
CODE_MAX = 999999


def generate_code() -> str:
    """Uniformly random 6-digit code in [100000, 999999]."""
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


def _as_utc(value: datetime) -> datetime:
    # Some backends (SQLite) hand back naive datetimes for tz-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _check_purpose(purpose: str) -> None:
    if purpose not in VERIFICATION_PURPOSES:
        raise ValueError(f"Unknown verification purpose: {purpose!r}")


def create_code(
    session: Session,
    email: str,
    purpose: str,
    ttl_minutes: int,
    now: datetime | None = None,
) -> VerificationCode:
    """Persist a fresh code for (email, purpose) expiring ttl_minutes from now."""
    _check_purpose(purpose)
    issued_at = now or datetime.now(UTC)
    record = VerificationCode(
        email=email,
        code=generate_code(),
        expires_at=issued_at + timedelta(minutes=ttl_minutes),
        purpose=purpose,
    )
    session.add(record)
    session.commit()
    session.refresh(record)
    return record


def find_latest_code(session: Session, email: str, purpose: str) -> VerificationCode | None:
    return (
        session.query(VerificationCode)
        .filter(VerificationCode.email == email, VerificationCode.purpose == purpose)
        .order_by(VerificationCode.expires_at.desc(), VerificationCode.id.desc())
        .first()
    )


def validate_code(
    session: Session,
    email: str,
    purpose: str,
    submitted_code: str,
    now: datetime | None = None,
) -> VerificationCode:
    """
    Return the authoritative code record if submitted_code is valid.

    Raises InvalidOrExpiredCodeError when there is no code, it does not match
    exactly, or it has expired.
    """
    _check_purpose(purpose)
    record = find_latest_code(session, email, purpose)
    if record is None:
        raise InvalidOrExpiredCodeError()
    if not secrets.compare_digest(record.code.encode("utf-8"), submitted_code.encode("utf-8")):
        raise InvalidOrExpiredCodeError()
    current = now or datetime.now(UTC)
    if current > _as_utc(record.expires_at):
        raise InvalidOrExpiredCodeError()
    return record


async def redeem_code(
    session: Session,
    email: str,
    purpose: str,
    submitted_code: str,
    action: Callable[[], Awaitable[T]],
    now: datetime | None = None,
) -> T:
    """Validate, run action, then delete the code. A failed action leaves the code usable."""
    record = validate_code(session, email, purpose, submitted_code, now=now)
    result = await action()
    session.delete(record)
    session.commit()
    logger.info("Verification code redeemed", extra={"purpose": purpose})
    return result


async def issue_signup_code(
    session: Session,
    identity: "SupabaseIdentityProvider",
    mailer: "ResendMailer",
    settings: "Settings",
    email: str,
) -> VerificationCode:
    """Issue and email a signup code. Raises DuplicateAccountError if the email is taken."""
    if await identity.find_user_by_email(email) is not None:
        raise DuplicateAccountError()
    record = create_code(session, email, PURPOSE_SIGNUP, settings.VERIFICATION_CODE_TTL_MINUTES)
    await notifications.send_signup_code(mailer, settings, email, record.code)
    logger.info("Verification code issued", extra={"purpose": PURPOSE_SIGNUP})
    return record


async def issue_password_reset_code(
    session: Session,
    identity: "SupabaseIdentityProvider",
    mailer: "ResendMailer",
    settings: "Settings",
    email: str,
) -> VerificationCode | None:
    """Issue and email a reset code if the account exists; return None otherwise."""
    if await identity.find_user_by_email(email) is None:
        return None
    record = create_code(
        session, email, PURPOSE_PASSWORD_RESET, settings.VERIFICATION_CODE_TTL_MINUTES
    )
    await notifications.send_password_reset_code(mailer, settings, email, record.code)
    logger.info("Verification code issued", extra={"purpose": PURPOSE_PASSWORD_RESET})
    return record
