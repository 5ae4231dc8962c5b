"""Data retention: delete verification codes that expired more than RETENTION_HOURS ago."""

import logging
from datetime import datetime, timezone, timedelta
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from portal.models import VerificationCode

if TYPE_CHECKING:
    from portal.core.config import Settings

logger = logging.getLogger(__name__)


def run_retention(session: Session, settings: "Settings") -> int:
    """
    Delete stale verification codes and return how many rows were removed.

    Only codes past their expiry by more than RETENTION_HOURS are touched, so
    the newest code per (email, purpose) is never removed while still valid.
    Idempotent: safe to run repeatedly.
    """
    if not settings.RETENTION_ENABLED:
        logger.info("Retention is disabled (RETENTION_ENABLED=false); skipping.")
        return 0

    cutoff = datetime.now(timezone.utc) - timedelta(hours=settings.RETENTION_HOURS)
    deleted_count = (
        session.query(VerificationCode)
        .filter(VerificationCode.expires_at < cutoff)
        .delete(synchronize_session=False)
    )
    session.commit()

    if deleted_count > 0:
        logger.info(
            "Retention run: cutoff=%s, codes_deleted=%s",
            cutoff.isoformat(),
            deleted_count,
        )
    return deleted_count
