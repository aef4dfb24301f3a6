from __future__ import annotations

from enum import Enum as PyEnum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.sql import func

from interview_engine.core.base import Base


class QuestionLevel(str, PyEnum):
    easy = "Easy"
    medium = "Medium"
    hard = "Hard"


class Question(Base):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String(255), nullable=False)
    level = Column(String(20), nullable=False, index=True)  # Easy | Medium | Hard
    topic = Column(String(100), nullable=True, index=True)

    problem_statement = Column(Text, nullable=False, default="")
    input_format = Column(Text, nullable=False, default="")
    output_format = Column(Text, nullable=False, default="")
    constraints = Column(Text, nullable=False, default="")
    input_example = Column(Text, nullable=False, default="")
    output_example = Column(Text, nullable=False, default="")
    explanation = Column(Text, nullable=False, default="")

    test_case_1_input = Column(Text, nullable=False, default="")
    test_case_1_output = Column(Text, nullable=False, default="")
    test_case_2_input = Column(Text, nullable=False, default="")
    test_case_2_output = Column(Text, nullable=False, default="")
    test_case_3_input = Column(Text, nullable=False, default="")
    test_case_3_output = Column(Text, nullable=False, default="")

    time_limit = Column(Integer, nullable=False, default=30)  # minutes
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    @property
    def test_cases(self) -> list[tuple[str, str]]:
        """(stdin, expected stdout) pairs; slots left blank on both sides are skipped."""
        pairs = [
            (self.test_case_1_input or "", self.test_case_1_output or ""),
            (self.test_case_2_input or "", self.test_case_2_output or ""),
            (self.test_case_3_input or "", self.test_case_3_output or ""),
        ]
        return [(i, o) for i, o in pairs if i.strip() or o.strip()]
