from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from interview_engine.core.datetime_utils import utc_now
from interview_engine.models.submission import Submission
from interview_engine.repositories.submissions import SubmissionRepository
from interview_engine.services.judge import EvaluationResult

logger = logging.getLogger(__name__)


class SubmissionPersistenceError(RuntimeError):
    pass


class SubmissionRecorder:
    """
    Stores the latest graded attempt per (question, candidate, interview).

    The table holds at most one row per triple. A first attempt inserts it;
    when a concurrent request wins that insert, this one falls back to the
    update path. Updates bump attempt_number inside the UPDATE statement so
    overlapping resubmissions are all counted.
    """

    def __init__(self, db: Session) -> None:
        self.db = db
        self.submissions = SubmissionRepository(db)

    @staticmethod
    def _values(code: str, language: str, evaluation: EvaluationResult, now: datetime) -> dict[str, Any]:
        return {
            "code": code,
            "language": (language or "").strip().lower(),
            "is_submitted": True,
            "submitted_at": now,
            "execution_time_ms": evaluation.execution_time_ms,
            "memory_used_kb": evaluation.memory_used_kb,
            "test_cases_passed": evaluation.test_cases_passed,
            "total_test_cases": evaluation.total_test_cases,
            "score": evaluation.score,
            "feedback": evaluation.feedback,
            "test_case_results": evaluation.breakdown(),
        }

    def _insert(self, question_id: int, user_id: int, interview_id: int, values: dict[str, Any]) -> Optional[Submission]:
        row = Submission(
            question_id=question_id,
            user_id=user_id,
            interview_id=interview_id,
            attempt_number=1,
            **values,
        )
        self.submissions.add(row)
        try:
            self.db.commit()
        except IntegrityError:
            # Another request inserted the first attempt for this triple.
            self.db.rollback()
            logger.info(
                "Submission for question=%s user=%s interview=%s created concurrently; updating it",
                question_id,
                user_id,
                interview_id,
            )
            return None
        self.db.refresh(row)
        return row

    def _update(self, question_id: int, user_id: int, interview_id: int, values: dict[str, Any]) -> Submission:
        touched = self.submissions.increment_attempt(question_id, user_id, interview_id, values)
        self.db.commit()
        row = self.submissions.get_for_triple(question_id, user_id, interview_id)
        if not touched or row is None:
            raise SubmissionPersistenceError("Submission disappeared while saving")
        self.db.refresh(row)
        return row

    def record(
        self,
        *,
        question_id: int,
        user_id: int,
        interview_id: int,
        code: str,
        language: str,
        evaluation: EvaluationResult,
        now: Optional[datetime] = None,
    ) -> Submission:
        values = self._values(code, language, evaluation, now or utc_now())
        try:
            row = None
            if self.submissions.get_for_triple(question_id, user_id, interview_id) is None:
                row = self._insert(question_id, user_id, interview_id, values)
            if row is None:
                row = self._update(question_id, user_id, interview_id, values)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception(
                "Failed to save submission (question=%s user=%s interview=%s)",
                question_id,
                user_id,
                interview_id,
            )
            raise SubmissionPersistenceError("Failed to save submission") from exc

        logger.info(
            "Recorded submission %s attempt=%s score=%s",
            row.id,
            row.attempt_number,
            row.score,
        )
        return row
