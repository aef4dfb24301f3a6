from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from interview_engine.core.datetime_utils import ensure_utc


class InterviewOut(BaseModel):
    id: int
    application_id: int
    created_by: Optional[int] = None
    scheduled_at: datetime
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    mode: str
    status: str
    duration_minutes: int
    timezone: str
    interview_type: str
    time_slot_start: datetime
    time_slot_end: datetime
    notes: Optional[str] = None
    ai_score: Optional[Decimal] = None
    ai_feedback_summary: Optional[str] = None
    plagiarism_flagged: bool = False
    integrity_flags: Optional[dict[str, Any]] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer(
        "scheduled_at",
        "started_at",
        "ended_at",
        "time_slot_start",
        "time_slot_end",
        "created_at",
        "updated_at",
    )
    def serialize_dt(self, dt: Optional[datetime]):
        return ensure_utc(dt)


class InterviewEndIn(BaseModel):
    ai_score: Optional[Decimal] = Field(default=None, ge=0, le=100)
    ai_feedback_summary: Optional[str] = None
    plagiarism_flagged: Optional[bool] = None
    integrity_flags: Optional[dict[str, Any]] = None


class InterviewStatsOut(BaseModel):
    total: int = 0
    pending: int = 0
    scheduled: int = 0
    in_progress: int = 0
    completed: int = 0
    cancelled: int = 0
    expired: int = 0
