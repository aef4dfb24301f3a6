from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from interview_engine.core.config import settings
from interview_engine.core.database import get_db
from interview_engine.dependencies.auth import get_current_user, require_candidate, require_recruiter
from interview_engine.dependencies.rate_limit import require_rate_limit
from interview_engine.dependencies.services import get_judge_client
from interview_engine.models.interview import Interview, InterviewStatus
from interview_engine.models.user import User, UserRole
from interview_engine.repositories.interview_questions import InterviewQuestionRepository
from interview_engine.repositories.interviews import InterviewRepository
from interview_engine.repositories.questions import QuestionRepository
from interview_engine.repositories.submissions import SubmissionRepository
from interview_engine.schemas.interview import InterviewEndIn, InterviewOut, InterviewStatsOut
from interview_engine.schemas.question import AssignQuestionsOut, InterviewQuestionOut, InterviewQuestionsOut
from interview_engine.schemas.submission import (
    CodeRunIn,
    CodeSubmitIn,
    CodeSubmitOut,
    EvaluationOut,
    SubmissionOut,
)
from interview_engine.services.interview_lifecycle import (
    InterviewStartWindowError,
    InvalidInterviewTransitionError,
    cancel_interview,
    end_interview,
    start_interview,
)
from interview_engine.services.judge import EvaluationResult, JudgeClient, decode_source
from interview_engine.services.progress import (
    NoQuestionsFoundError,
    ProgressAccessor,
    QuestionLockedError,
    QuestionNotInInterviewError,
)
from interview_engine.services.question_assigner import InsufficientQuestionPoolError, QuestionAssigner
from interview_engine.services.submissions import SubmissionPersistenceError, SubmissionRecorder

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/interviews", tags=["interviews"], dependencies=[Depends(get_current_user)])

CLOSED_STATUSES = frozenset(
    {InterviewStatus.completed.value, InterviewStatus.cancelled.value, InterviewStatus.expired.value}
)

code_rate_limit = require_rate_limit(
    "interviews_code",
    limit=settings.CODE_RATE_LIMIT_MAX_REQUESTS,
    window_seconds=settings.CODE_RATE_LIMIT_WINDOW_SECONDS,
)


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Interview not found")


def _get_interview_for_user(db: Session, interview_id: int, user: User) -> Interview:
    """
    Candidates see their own interviews; recruiters see their organization's.
    Anything else looks like a missing interview.
    """
    iv = InterviewRepository(db).get(interview_id)
    if not iv:
        raise _not_found()

    application = iv.application
    if user.role == UserRole.candidate.value:
        if application.candidate_id != user.id:
            raise _not_found()
    elif not user.organization_id or application.organization_id != user.organization_id:
        raise _not_found()
    return iv


def _conflict(exc: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))


def _evaluation_out(result: EvaluationResult) -> EvaluationOut:
    return EvaluationOut(
        score=result.score,
        test_cases_passed=result.test_cases_passed,
        total_test_cases=result.total_test_cases,
        execution_time_ms=result.execution_time_ms,
        memory_used_kb=result.memory_used_kb,
        feedback=result.feedback,
        output=result.output,
        error=result.error,
        test_case_results=result.breakdown(),
    )


# -------------------------
# Listings
# -------------------------
@router.get("/recruiter", response_model=list[InterviewOut])
def list_recruiter_interviews(
    status_filter: Optional[InterviewStatus] = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    user: User = Depends(require_recruiter),
):
    if not user.organization_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Recruiter not associated with any organization")
    return InterviewRepository(db).list_for_organization(
        user.organization_id, status_filter.value if status_filter else None
    )


@router.get("/recruiter/stats", response_model=InterviewStatsOut)
def recruiter_interview_stats(
    db: Session = Depends(get_db),
    user: User = Depends(require_recruiter),
):
    counts = InterviewRepository(db).count_by_status(user.id)
    return InterviewStatsOut(total=sum(counts.values()), **counts)


@router.get("/candidate", response_model=list[InterviewOut])
def list_candidate_interviews(
    status_filter: Optional[InterviewStatus] = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    user: User = Depends(require_candidate),
):
    return InterviewRepository(db).list_for_candidate(user.id, status_filter.value if status_filter else None)


# -------------------------
# Code execution
# -------------------------
@router.post("/run-code", response_model=EvaluationOut, dependencies=[Depends(code_rate_limit)])
def run_code(
    payload: CodeRunIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_candidate),
    judge: JudgeClient = Depends(get_judge_client),
):
    question = QuestionRepository(db).get(payload.question_id)
    if not question or not question.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Question not found")

    test_cases = question.test_cases
    # Nothing is written; release the read transaction before the judge round-trips.
    db.commit()

    logger.info("Running code for question %s (user=%s language=%s)", question.id, user.id, payload.language)
    return _evaluation_out(judge.evaluate(payload.code, payload.language, test_cases))


@router.post("/submit-code", response_model=CodeSubmitOut, dependencies=[Depends(code_rate_limit)])
def submit_code(
    payload: CodeSubmitIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_candidate),
    judge: JudgeClient = Depends(get_judge_client),
):
    iv = _get_interview_for_user(db, payload.interview_id, user)
    if iv.status in CLOSED_STATUSES:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Interview is {iv.status}")

    try:
        progress = ProgressAccessor(InterviewQuestionRepository(db), SubmissionRepository(db)).get(iv.id, user.id)
        iq = progress.ensure_unlocked(payload.question_id)
    except NoQuestionsFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except QuestionNotInInterviewError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except QuestionLockedError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))

    test_cases = iq.question.test_cases
    interview_id = iv.id
    user_id = user.id
    db.commit()

    result = judge.evaluate(payload.code, payload.language, test_cases)

    try:
        submission = SubmissionRecorder(db).record(
            question_id=payload.question_id,
            user_id=user_id,
            interview_id=interview_id,
            code=decode_source(payload.code),
            language=payload.language,
            evaluation=result,
        )
    except SubmissionPersistenceError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))

    return CodeSubmitOut(
        submission_id=submission.id,
        attempt_number=submission.attempt_number,
        evaluation=_evaluation_out(result),
    )


@router.get("/questions/{question_id}/submissions", response_model=list[SubmissionOut])
def list_question_submissions(
    question_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_candidate),
):
    """The caller's graded attempts at one question, across interviews."""
    return SubmissionRepository(db).list_for_question(question_id, user.id)


# -------------------------
# Single interview
# -------------------------
@router.get("/{interview_id}", response_model=InterviewOut)
def get_interview(
    interview_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return _get_interview_for_user(db, interview_id, user)


@router.post("/{interview_id}/start", response_model=InterviewOut)
def start(
    interview_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_candidate),
):
    iv = _get_interview_for_user(db, interview_id, user)
    try:
        return start_interview(db, iv)
    except InterviewStartWindowError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": str(exc), "details": exc.details},
        )
    except InvalidInterviewTransitionError as exc:
        raise _conflict(exc)


@router.post("/{interview_id}/end", response_model=InterviewOut)
def end(
    interview_id: int,
    payload: Optional[InterviewEndIn] = Body(default=None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    iv = _get_interview_for_user(db, interview_id, user)
    if user.role == UserRole.recruiter.value and iv.created_by != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the scheduling recruiter can end this interview")

    data = payload or InterviewEndIn()
    try:
        return end_interview(
            db,
            iv,
            ai_score=data.ai_score,
            ai_feedback_summary=data.ai_feedback_summary,
            plagiarism_flagged=data.plagiarism_flagged,
            integrity_flags=data.integrity_flags,
        )
    except InvalidInterviewTransitionError as exc:
        raise _conflict(exc)


@router.post("/{interview_id}/cancel", response_model=InterviewOut)
def cancel(
    interview_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    iv = _get_interview_for_user(db, interview_id, user)
    try:
        return cancel_interview(db, iv)
    except InvalidInterviewTransitionError as exc:
        raise _conflict(exc)


@router.post("/{interview_id}/assign-questions", response_model=AssignQuestionsOut)
def assign_questions(
    interview_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_recruiter),
):
    iv = _get_interview_for_user(db, interview_id, user)
    if not iv.is_coding:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Questions can only be assigned to coding interviews")

    assigner = QuestionAssigner(QuestionRepository(db), InterviewQuestionRepository(db))
    try:
        assigner.assign(iv.id)
        db.commit()
    except InsufficientQuestionPoolError as exc:
        db.rollback()
        raise _conflict(exc)

    rows = InterviewQuestionRepository(db).list_for_interview(iv.id)
    return AssignQuestionsOut(
        interview_id=iv.id,
        questions=[InterviewQuestionOut.model_validate(r) for r in rows],
    )


@router.get("/{interview_id}/questions", response_model=InterviewQuestionsOut)
def get_interview_questions(
    interview_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_candidate),
):
    iv = _get_interview_for_user(db, interview_id, user)
    try:
        progress = ProgressAccessor(InterviewQuestionRepository(db), SubmissionRepository(db)).get(iv.id, user.id)
    except NoQuestionsFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))

    return InterviewQuestionsOut(
        questions=[InterviewQuestionOut.model_validate(r) for r in progress.revealed],
        current_question_index=progress.current_question_index,
        total_questions=progress.total_questions,
    )


@router.get("/{interview_id}/submissions", response_model=list[SubmissionOut])
def list_interview_submissions(
    interview_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    iv = _get_interview_for_user(db, interview_id, user)
    return SubmissionRepository(db).list_for_interview(iv.id, iv.application.candidate_id)
