from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from interview_engine.models.question import Question


class QuestionRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, question_id: int) -> Optional[Question]:
        return self.db.query(Question).filter(Question.id == question_id).first()

    def list_active(self, level: Optional[str] = None) -> list[Question]:
        q = self.db.query(Question).filter(Question.is_active.is_(True))
        if level is not None:
            q = q.filter(Question.level == level)
        return q.order_by(Question.id).all()
