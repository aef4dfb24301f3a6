from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.types import JSON

from interview_engine.core.base import Base


class Submission(Base):
    """
    Latest graded attempt for one (question, candidate, interview) triple.
    Resubmissions update this row in place; attempt_number counts them.
    """

    __tablename__ = "submissions"
    __table_args__ = (
        UniqueConstraint("question_id", "user_id", "interview_id", name="uq_submissions_question_user_interview"),
    )

    id = Column(Integer, primary_key=True, index=True)

    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    interview_id = Column(Integer, ForeignKey("interviews.id", ondelete="SET NULL"), nullable=True, index=True)

    code = Column(Text, nullable=False)
    language = Column(String(50), nullable=False, index=True)
    attempt_number = Column(Integer, nullable=False, default=1)
    is_submitted = Column(Boolean, nullable=False, default=False, index=True)
    submitted_at = Column(DateTime(timezone=True), nullable=True)

    execution_time_ms = Column(Integer, nullable=True)
    memory_used_kb = Column(Integer, nullable=True)
    test_cases_passed = Column(Integer, nullable=True)
    total_test_cases = Column(Integer, nullable=True)
    score = Column(Numeric(5, 2), nullable=True)
    feedback = Column(Text, nullable=True)
    test_case_results = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    question = relationship("Question")
