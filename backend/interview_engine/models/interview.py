from __future__ import annotations

from enum import Enum as PyEnum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.types import JSON

from interview_engine.core.base import Base


class InterviewStatus(str, PyEnum):
    pending = "pending"
    scheduled = "scheduled"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"
    expired = "expired"


class InterviewMode(str, PyEnum):
    live = "live"
    async_ = "async"


class InterviewType(str, PyEnum):
    coding = "coding"
    technical = "technical"
    behavioral = "behavioral"
    system_design = "system_design"
    case_study = "case_study"


class Interview(Base):
    __tablename__ = "interviews"

    id = Column(Integer, primary_key=True, index=True)

    application_id = Column(
        Integer,
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    scheduled_at = Column(DateTime(timezone=True), nullable=False, index=True)
    started_at = Column(DateTime(timezone=True), nullable=True)
    ended_at = Column(DateTime(timezone=True), nullable=True)

    mode = Column(String(20), nullable=False, default=InterviewMode.live.value)
    status = Column(String(20), nullable=False, default=InterviewStatus.pending.value, index=True)
    duration_minutes = Column(Integer, nullable=False, default=60)
    timezone = Column(String(50), nullable=False, default="UTC")
    interview_type = Column(String(50), nullable=False, index=True)

    # The window in which the candidate is allowed to start.
    time_slot_start = Column(DateTime(timezone=True), nullable=False, index=True)
    time_slot_end = Column(DateTime(timezone=True), nullable=False, index=True)

    notes = Column(Text, nullable=True)

    ai_score = Column(Numeric(5, 2), nullable=True)
    ai_feedback_summary = Column(Text, nullable=True)
    plagiarism_flagged = Column(Boolean, nullable=False, default=False)
    integrity_flags = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    application = relationship("Application", back_populates="interviews")

    questions = relationship(
        "InterviewQuestion",
        back_populates="interview",
        cascade="all, delete-orphan",
        order_by="asc(InterviewQuestion.order_index)",
    )

    @property
    def is_coding(self) -> bool:
        return self.interview_type == InterviewType.coding.value
