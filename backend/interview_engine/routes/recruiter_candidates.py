from __future__ import annotations

import logging
from typing import Callable, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from interview_engine.core.database import get_db, get_session_factory
from interview_engine.dependencies.auth import require_recruiter
from interview_engine.dependencies.rate_limit import require_rate_limit
from interview_engine.dependencies.services import get_notification_queue
from interview_engine.models.user import User
from interview_engine.schemas.bulk_assignment import BulkAssignmentRequest, BulkAssignmentResult
from interview_engine.services.assignment_dispatcher import (
    AssignmentDispatcher,
    JobNotAccessibleError,
    OrganizationNotResolvedError,
)
from interview_engine.services.notifications import NotificationQueue
from interview_engine.services.slot_planner import SchedulingConfigError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recruiter/candidates", tags=["recruiter"])


@router.post(
    "/bulk-assign",
    response_model=BulkAssignmentResult,
    dependencies=[Depends(require_rate_limit("recruiter_bulk_assign"))],
)
def bulk_assign_candidates(
    payload: BulkAssignmentRequest,
    db: Session = Depends(get_db),
    recruiter: User = Depends(require_recruiter),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
    notifier: Optional[NotificationQueue] = Depends(get_notification_queue),
):
    dispatcher = AssignmentDispatcher(session_factory, notifier=notifier)
    try:
        result = dispatcher.dispatch(db, recruiter, payload)
    except OrganizationNotResolvedError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    except JobNotAccessibleError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except SchedulingConfigError as exc:
        raise HTTPException(status_code=422, detail=str(exc))

    logger.info(
        "Bulk assignment by recruiter %s: %s successful, %s failed",
        recruiter.id,
        result.successful,
        result.failed,
    )
    return result
