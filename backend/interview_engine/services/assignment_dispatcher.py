"""
Bulk assignment: candidates + availability window -> scheduled interviews.

Slots are filled in order (days outer, slots inner). The candidates that
share a slot are processed concurrently, each in its own DB session, and
every candidate gets its own result. A failure for one candidate never
undoes the rows already committed for another.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Optional, Sequence

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from interview_engine.core.config import settings
from interview_engine.models.interview import Interview, InterviewStatus, InterviewType
from interview_engine.models.user import User, UserRole
from interview_engine.repositories.applications import ApplicationRepository
from interview_engine.repositories.interview_questions import InterviewQuestionRepository
from interview_engine.repositories.interviews import InterviewRepository
from interview_engine.repositories.jobs import JobRepository
from interview_engine.repositories.questions import QuestionRepository
from interview_engine.repositories.users import UserRepository, normalize_email
from interview_engine.schemas.bulk_assignment import (
    BulkAssignmentRequest,
    BulkAssignmentResult,
    CandidateAssignmentResult,
    CandidateIn,
)
from interview_engine.services.notifications import InterviewNotification, NotificationQueue
from interview_engine.services.question_assigner import InsufficientQuestionPoolError, QuestionAssigner
from interview_engine.services.slot_planner import (
    chunk_candidates,
    combine_slot,
    iter_assignments,
    plan_slots,
    resolve_timezone,
)

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Interview scheduled successfully"
DUPLICATE_MESSAGE = "Duplicate email in batch"


class OrganizationNotResolvedError(PermissionError):
    def __init__(self) -> None:
        super().__init__("Recruiter not associated with any organization")


class JobNotAccessibleError(LookupError):
    def __init__(self) -> None:
        super().__init__("Job not found or not accessible")


class CandidateConflictError(ValueError):
    pass


def default_question_assigner(db: Session) -> QuestionAssigner:
    return QuestionAssigner(QuestionRepository(db), InterviewQuestionRepository(db))


@dataclass(frozen=True)
class _AssignmentContext:
    recruiter_id: int
    organization_id: int
    job_id: int
    job_title: str
    request: BulkAssignmentRequest


@dataclass(frozen=True)
class _Outcome:
    result: CandidateAssignmentResult
    notification: Optional[InterviewNotification] = None


class AssignmentDispatcher:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        notifier: Optional[NotificationQueue] = None,
        max_workers: Optional[int] = None,
        question_assigner_factory: Callable[[Session], QuestionAssigner] = default_question_assigner,
        today: Optional[Callable[[object], date]] = None,
    ) -> None:
        self.session_factory = session_factory
        self.notifier = notifier
        self.max_workers = max(1, max_workers or settings.BULK_ASSIGN_MAX_WORKERS)
        self.question_assigner_factory = question_assigner_factory
        self._today = today or (lambda tz: datetime.now(tz).date())

    def dispatch(self, db: Session, recruiter: User, request: BulkAssignmentRequest) -> BulkAssignmentResult:
        if not recruiter.organization_id:
            raise OrganizationNotResolvedError()

        job = JobRepository(db).get_for_organization(request.job_id, recruiter.organization_id)
        if job is None:
            raise JobNotAccessibleError()

        results: list[Optional[CandidateAssignmentResult]] = [None] * len(request.candidates)

        seen: set[str] = set()
        pending: list[tuple[int, CandidateIn]] = []
        for idx, candidate in enumerate(request.candidates):
            email = normalize_email(candidate.email)
            if email in seen:
                results[idx] = CandidateAssignmentResult(email=email, success=False, message=DUPLICATE_MESSAGE)
                continue
            seen.add(email)
            pending.append((idx, candidate))

        # Both raise SchedulingConfigError before anything is written.
        tz = resolve_timezone(request.timezone)
        plan = plan_slots(
            len(pending),
            request.number_of_days,
            request.start_time,
            request.end_time,
            request.duration_minutes,
        )
        start_date = request.start_date or self._today(tz)

        logger.info(
            "Bulk assignment job=%s candidates=%s slots=%s parallelism=%s",
            job.id,
            len(pending),
            plan.total_slots,
            plan.parallelism,
        )

        ctx = _AssignmentContext(
            recruiter_id=recruiter.id,
            organization_id=recruiter.organization_id,
            job_id=job.id,
            job_title=job.title,
            request=request,
        )

        notifications: list[InterviewNotification] = []
        workers = min(self.max_workers, plan.parallelism)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="bulk-assign") as pool:
            for day_index, slot, chunk in iter_assignments(plan, chunk_candidates(pending, plan.parallelism)):
                slot_start, slot_end = combine_slot(start_date + timedelta(days=day_index), slot, tz)
                futures = [
                    (idx, pool.submit(self._assign_one, ctx, candidate, slot_start, slot_end))
                    for idx, candidate in chunk
                ]
                for idx, future in futures:
                    outcome = future.result()
                    results[idx] = outcome.result
                    if outcome.notification is not None:
                        notifications.append(outcome.notification)

        self._notify(notifications)

        final = [r for r in results if r is not None]
        successful = sum(1 for r in final if r.success)
        return BulkAssignmentResult(successful=successful, failed=len(final) - successful, results=final)

    def _notify(self, notifications: Sequence[InterviewNotification]) -> None:
        if self.notifier is None:
            return
        for notification in notifications:
            self.notifier.submit(notification)

    def _assign_one(
        self,
        ctx: _AssignmentContext,
        candidate: CandidateIn,
        slot_start: datetime,
        slot_end: datetime,
    ) -> _Outcome:
        email = normalize_email(candidate.email)
        db = self.session_factory()
        try:
            user = self._find_or_create_candidate(db, candidate)
            application = self._find_or_create_application(db, ctx, user.id)

            interview = InterviewRepository(db).add(
                Interview(
                    application_id=application.id,
                    created_by=ctx.recruiter_id,
                    scheduled_at=slot_start,
                    mode=ctx.request.mode.value,
                    status=InterviewStatus.pending.value,
                    duration_minutes=ctx.request.duration_minutes,
                    timezone=ctx.request.timezone,
                    interview_type=ctx.request.interview_type.value,
                    time_slot_start=slot_start,
                    time_slot_end=slot_end,
                    notes=ctx.request.notes,
                )
            )
            db.commit()
            interview_id = interview.id
            application_id = application.id
            candidate_name = user.full_name

            message = SUCCESS_MESSAGE
            questions_assigned = 0
            if ctx.request.interview_type == InterviewType.coding:
                try:
                    rows = self.question_assigner_factory(db).assign(interview_id)
                    db.commit()
                    questions_assigned = len(rows)
                except (InsufficientQuestionPoolError, SQLAlchemyError) as exc:
                    db.rollback()
                    logger.exception("Question assignment failed for interview %s", interview_id)
                    message = f"{SUCCESS_MESSAGE} (question assignment failed: {exc})"

            result = CandidateAssignmentResult(
                email=email,
                success=True,
                message=message,
                application_id=application_id,
                interview_id=interview_id,
                time_slot_start=slot_start,
                time_slot_end=slot_end,
                questions_assigned=questions_assigned,
            )
            notification = InterviewNotification(
                email=email,
                candidate_name=candidate_name,
                job_title=ctx.job_title,
                interview_id=interview_id,
                interview_type=ctx.request.interview_type.value,
                time_slot_start=slot_start,
                time_slot_end=slot_end,
                timezone=ctx.request.timezone,
                duration_minutes=ctx.request.duration_minutes,
            )
            return _Outcome(result=result, notification=notification)
        except Exception as exc:  # pylint: disable=broad-except
            db.rollback()
            logger.exception("Bulk assignment failed for %s", email)
            return _Outcome(result=CandidateAssignmentResult(email=email, success=False, message=str(exc)))
        finally:
            db.close()

    def _find_or_create_candidate(self, db: Session, candidate: CandidateIn) -> User:
        users = UserRepository(db)
        user = users.get_by_email(candidate.email)
        if user is None:
            try:
                user = users.create_candidate(
                    candidate.email,
                    first_name=candidate.first_name,
                    last_name=candidate.last_name,
                    profile=candidate.profile(),
                )
                db.commit()
            except IntegrityError:
                # Created concurrently by another request.
                db.rollback()
                user = users.get_by_email(candidate.email)
                if user is None:
                    raise
        if user.role != UserRole.candidate.value:
            raise CandidateConflictError("Email belongs to a non-candidate account")
        return user

    def _find_or_create_application(self, db: Session, ctx: _AssignmentContext, candidate_id: int):
        applications = ApplicationRepository(db)
        application = applications.get_for_job_and_candidate(ctx.job_id, candidate_id)
        if application is not None:
            return application
        try:
            application = applications.create(
                job_id=ctx.job_id,
                candidate_id=candidate_id,
                organization_id=ctx.organization_id,
                recruiter_id=ctx.recruiter_id,
            )
            db.commit()
        except IntegrityError:
            db.rollback()
            application = applications.get_for_job_and_candidate(ctx.job_id, candidate_id)
            if application is None:
                raise
        return application
