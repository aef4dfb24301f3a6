from __future__ import annotations

import logging

from interview_engine.celery_app import EXPIRE_OVERDUE_TASK, celery_app
from interview_engine.core.database import SessionLocal
from interview_engine.services.interview_lifecycle import expire_overdue_interviews


logger = logging.getLogger(__name__)


@celery_app.task(name=EXPIRE_OVERDUE_TASK)
def expire_overdue() -> int:
    db = SessionLocal()
    try:
        return expire_overdue_interviews(db)
    except Exception:  # pylint: disable=broad-except
        db.rollback()
        logger.exception("Failed to expire overdue interviews")
        raise
    finally:
        db.close()
