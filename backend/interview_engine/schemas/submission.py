from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from interview_engine.core.datetime_utils import ensure_utc


class CodeRunIn(BaseModel):
    question_id: int = Field(gt=0)
    code: str = Field(min_length=1, max_length=100_000)
    language: str = Field(min_length=1, max_length=50)


class CodeSubmitIn(CodeRunIn):
    interview_id: int = Field(gt=0)


class TestCaseResultOut(BaseModel):
    index: int
    status: str
    passed: bool
    expected_output: str
    stdout: str = ""
    stderr: str = ""
    judge_status_id: Optional[int] = None
    judge_status: Optional[str] = None
    execution_time_ms: int = 0
    memory_kb: int = 0
    feedback: str = ""


class EvaluationOut(BaseModel):
    score: Decimal
    test_cases_passed: int
    total_test_cases: int
    execution_time_ms: int
    memory_used_kb: int
    feedback: str
    output: str = ""
    error: str = ""
    test_case_results: List[TestCaseResultOut] = []


class SubmissionOut(BaseModel):
    id: int
    question_id: int
    user_id: int
    interview_id: Optional[int] = None
    language: str
    attempt_number: int
    is_submitted: bool
    submitted_at: Optional[datetime] = None
    execution_time_ms: Optional[int] = None
    memory_used_kb: Optional[int] = None
    test_cases_passed: Optional[int] = None
    total_test_cases: Optional[int] = None
    score: Optional[Decimal] = None
    feedback: Optional[str] = None
    test_case_results: Optional[List[dict[str, Any]]] = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("submitted_at")
    def serialize_dt(self, dt: Optional[datetime]):
        return ensure_utc(dt)


class CodeSubmitOut(BaseModel):
    submission_id: int
    attempt_number: int
    evaluation: EvaluationOut
