from __future__ import annotations

from typing import Optional

from sqlalchemy import asc
from sqlalchemy.orm import Session

from interview_engine.models.interview_question import InterviewQuestion


class InterviewQuestionRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def list_for_interview(self, interview_id: int) -> list[InterviewQuestion]:
        return (
            self.db.query(InterviewQuestion)
            .filter(InterviewQuestion.interview_id == interview_id)
            .order_by(asc(InterviewQuestion.order_index), asc(InterviewQuestion.id))
            .all()
        )

    def create(
        self,
        *,
        interview_id: int,
        question_id: int,
        order_index: int,
        time_limit: Optional[int] = None,
    ) -> InterviewQuestion:
        row = InterviewQuestion(
            interview_id=interview_id,
            question_id=question_id,
            order_index=order_index,
            time_limit=time_limit,
        )
        self.db.add(row)
        return row
