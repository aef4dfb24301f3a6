from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import asc
from sqlalchemy.orm import Session

from interview_engine.models.submission import Submission


class SubmissionRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_for_triple(self, question_id: int, user_id: int, interview_id: int) -> Optional[Submission]:
        return self._triple(question_id, user_id, interview_id).first()

    def _triple(self, question_id: int, user_id: int, interview_id: int):
        return self.db.query(Submission).filter(
            Submission.question_id == question_id,
            Submission.user_id == user_id,
            Submission.interview_id == interview_id,
        )

    def increment_attempt(
        self, question_id: int, user_id: int, interview_id: int, values: dict[str, Any]
    ) -> int:
        """
        Overwrite the stored attempt and bump attempt_number in one UPDATE.
        Returns the number of rows touched.
        """
        return self._triple(question_id, user_id, interview_id).update(
            {**values, "attempt_number": Submission.attempt_number + 1},
            synchronize_session=False,
        )

    def list_for_question(self, question_id: int, user_id: int) -> list[Submission]:
        return (
            self.db.query(Submission)
            .filter(Submission.question_id == question_id, Submission.user_id == user_id)
            .order_by(asc(Submission.attempt_number), asc(Submission.id))
            .all()
        )

    def list_for_interview(self, interview_id: int, user_id: int) -> list[Submission]:
        return (
            self.db.query(Submission)
            .filter(Submission.interview_id == interview_id, Submission.user_id == user_id)
            .order_by(asc(Submission.id))
            .all()
        )

    def submitted_question_ids(self, interview_id: int, user_id: int) -> set[int]:
        rows = (
            self.db.query(Submission.question_id)
            .filter(
                Submission.interview_id == interview_id,
                Submission.user_id == user_id,
                Submission.is_submitted.is_(True),
            )
            .all()
        )
        return {r[0] for r in rows}

    def add(self, submission: Submission) -> Submission:
        self.db.add(submission)
        return submission
