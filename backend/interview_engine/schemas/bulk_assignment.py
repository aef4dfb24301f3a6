from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_serializer, field_validator, model_validator

from interview_engine.core.datetime_utils import ensure_utc
from interview_engine.models.interview import InterviewMode, InterviewType
from interview_engine.services.slot_planner import HHMM_RE


class CandidateIn(BaseModel):
    email: EmailStr
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=50)
    location: Optional[str] = Field(default=None, max_length=255)
    skills: Optional[List[str]] = None
    experience: Optional[str] = None
    education: Optional[str] = None
    resume_url: Optional[str] = Field(default=None, max_length=500)
    linkedin_url: Optional[str] = Field(default=None, max_length=500)
    github_url: Optional[str] = Field(default=None, max_length=500)
    portfolio_url: Optional[str] = Field(default=None, max_length=500)
    desired_job_title: Optional[str] = Field(default=None, max_length=255)
    preferred_work_location: Optional[str] = Field(default=None, max_length=255)
    salary_expectation: Optional[str] = Field(default=None, max_length=100)
    notice_period: Optional[str] = Field(default=None, max_length=100)
    work_authorization: Optional[str] = Field(default=None, max_length=100)
    preferred_job_type: Optional[str] = Field(default=None, max_length=100)
    languages_spoken: Optional[List[str]] = None

    def profile(self) -> dict:
        return self.model_dump(exclude={"email", "first_name", "last_name"}, exclude_none=True)


class BulkAssignmentRequest(BaseModel):
    job_id: int = Field(gt=0)
    candidates: List[CandidateIn] = Field(min_length=1)
    number_of_days: int = Field(ge=1, le=365)
    start_time: str
    end_time: str
    interview_type: InterviewType
    duration_minutes: int = Field(ge=1, le=480)
    notes: Optional[str] = Field(default=None, max_length=1000)
    mode: InterviewMode = InterviewMode.live
    start_date: Optional[date] = None
    timezone: str = Field(default="UTC", max_length=50)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_hhmm(cls, v: str) -> str:
        v = (v or "").strip()
        if not HHMM_RE.match(v):
            raise ValueError("Time must be in HH:mm format (24-hour)")
        return v

    @model_validator(mode="after")
    def validate_window(self):
        sh, sm = (int(p) for p in self.start_time.split(":"))
        eh, em = (int(p) for p in self.end_time.split(":"))
        if eh * 60 + em <= sh * 60 + sm:
            raise ValueError("End time must be after start time")
        return self


class CandidateAssignmentResult(BaseModel):
    email: str
    success: bool
    message: str
    application_id: Optional[int] = None
    interview_id: Optional[int] = None
    time_slot_start: Optional[datetime] = None
    time_slot_end: Optional[datetime] = None
    questions_assigned: int = 0

    @field_serializer("time_slot_start", "time_slot_end")
    def serialize_dt(self, dt: Optional[datetime]):
        return ensure_utc(dt)


class BulkAssignmentResult(BaseModel):
    successful: int
    failed: int
    results: List[CandidateAssignmentResult]
