from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy.orm import Session

from interview_engine.core.datetime_utils import ensure_utc, utc_now
from interview_engine.models.interview import Interview, InterviewStatus
from interview_engine.repositories.interviews import InterviewRepository

logger = logging.getLogger(__name__)

S = InterviewStatus

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    S.pending.value: frozenset({S.scheduled.value, S.in_progress.value, S.cancelled.value, S.expired.value}),
    S.scheduled.value: frozenset({S.in_progress.value, S.cancelled.value, S.expired.value}),
    S.in_progress.value: frozenset({S.completed.value}),
    S.completed.value: frozenset(),
    S.cancelled.value: frozenset(),
    S.expired.value: frozenset(),
}

STARTABLE = frozenset({S.pending.value, S.scheduled.value})


class InvalidInterviewTransitionError(RuntimeError):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Cannot move interview from '{current}' to '{target}'")
        self.current = current
        self.target = target


class InterviewStartWindowError(RuntimeError):
    """Start attempted outside [time_slot_start, time_slot_end]."""

    FUTURE = "future"
    EXPIRED = "expired"

    def __init__(self, reason: str, *, slot_start: datetime, slot_end: datetime, now: datetime) -> None:
        if reason == self.FUTURE:
            message = (
                "Interview cannot be started early. "
                f"Please start the interview at {slot_start.isoformat()}"
            )
        else:
            message = "Interview time slot has expired. Please contact the recruiter to reschedule."
        super().__init__(message)
        self.reason = reason
        self.slot_start = slot_start
        self.slot_end = slot_end
        self.now = now

    @property
    def details(self) -> dict[str, Any]:
        return {
            "reason": self.reason,
            "time_slot_start": self.slot_start.isoformat(),
            "time_slot_end": self.slot_end.isoformat(),
            "current_time": self.now.isoformat(),
        }


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def transition(interview: Interview, target: InterviewStatus | str) -> Interview:
    target_value = target.value if isinstance(target, InterviewStatus) else str(target)
    if not can_transition(interview.status, target_value):
        raise InvalidInterviewTransitionError(interview.status, target_value)
    interview.status = target_value
    return interview


def start_interview(db: Session, interview: Interview, now: Optional[datetime] = None) -> Interview:
    """
    Candidate start. Outside the slot window nothing starts; a late start
    also moves the interview to `expired` before raising.
    """
    now = ensure_utc(now) or utc_now()

    if interview.status not in STARTABLE or interview.started_at is not None:
        raise InvalidInterviewTransitionError(interview.status, S.in_progress.value)

    slot_start = ensure_utc(interview.time_slot_start)
    slot_end = ensure_utc(interview.time_slot_end)

    if now < slot_start:
        raise InterviewStartWindowError(
            InterviewStartWindowError.FUTURE, slot_start=slot_start, slot_end=slot_end, now=now
        )

    if now > slot_end:
        transition(interview, S.expired)
        db.commit()
        logger.info("Interview %s expired on late start attempt", interview.id)
        raise InterviewStartWindowError(
            InterviewStartWindowError.EXPIRED, slot_start=slot_start, slot_end=slot_end, now=now
        )

    transition(interview, S.in_progress)
    interview.started_at = now
    db.commit()
    db.refresh(interview)
    return interview


def end_interview(
    db: Session,
    interview: Interview,
    *,
    ai_score: Optional[Decimal] = None,
    ai_feedback_summary: Optional[str] = None,
    plagiarism_flagged: Optional[bool] = None,
    integrity_flags: Optional[dict] = None,
    now: Optional[datetime] = None,
) -> Interview:
    transition(interview, S.completed)
    interview.ended_at = ensure_utc(now) or utc_now()

    if ai_score is not None:
        interview.ai_score = ai_score
    if ai_feedback_summary is not None:
        interview.ai_feedback_summary = ai_feedback_summary
    if plagiarism_flagged is not None:
        interview.plagiarism_flagged = plagiarism_flagged
    if integrity_flags is not None:
        interview.integrity_flags = integrity_flags

    db.commit()
    db.refresh(interview)
    return interview


def cancel_interview(db: Session, interview: Interview) -> Interview:
    transition(interview, S.cancelled)
    db.commit()
    db.refresh(interview)
    return interview


def expire_overdue_interviews(db: Session, now: Optional[datetime] = None) -> int:
    """Move pending/scheduled interviews whose slot has ended to `expired`."""
    now = ensure_utc(now) or utc_now()
    overdue = InterviewRepository(db).list_overdue(now)
    for interview in overdue:
        transition(interview, S.expired)
    if overdue:
        db.commit()
        logger.info("Expired %s overdue interviews", len(overdue))
    return len(overdue)
