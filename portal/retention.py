"""
Purge long-expired verification codes. Meant for cron:

  0 * * * * cd /srv/tribithub && .venv/bin/python -m portal.retention
"""

import logging
import sys

from sqlalchemy.exc import SQLAlchemyError

from portal.core.config import get_settings
from portal.core.database import session_scope
from portal.core.logging import configure_logging
from portal.services.retention import run_retention

logger = logging.getLogger(__name__)


def main() -> int:
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    try:
        with session_scope() as db:
            removed = run_retention(db, settings)
    except SQLAlchemyError:
        logger.exception("Verification code purge failed")
        return 1
    logger.info("Verification code purge finished", extra={"codes_deleted": removed})
    return 0


if __name__ == "__main__":
    sys.exit(main())
