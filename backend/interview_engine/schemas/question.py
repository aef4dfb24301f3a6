from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class QuestionOut(BaseModel):
    """Candidate-facing view. Hidden test cases are never exposed."""

    id: int
    name: str
    level: str
    topic: Optional[str] = None
    problem_statement: str
    input_format: str
    output_format: str
    constraints: str
    input_example: str
    output_example: str
    explanation: str
    time_limit: int

    model_config = ConfigDict(from_attributes=True)


class InterviewQuestionOut(BaseModel):
    id: int
    interview_id: int
    question_id: int
    order_index: int
    time_limit: Optional[int] = None
    question: QuestionOut

    model_config = ConfigDict(from_attributes=True)


class InterviewQuestionsOut(BaseModel):
    questions: List[InterviewQuestionOut]
    current_question_index: int
    total_questions: int


class AssignQuestionsOut(BaseModel):
    interview_id: int
    questions: List[InterviewQuestionOut]
