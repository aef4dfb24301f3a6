from __future__ import annotations

from dataclasses import dataclass
from typing import Collection, Sequence

from interview_engine.models.interview_question import InterviewQuestion
from interview_engine.repositories.interview_questions import InterviewQuestionRepository
from interview_engine.repositories.submissions import SubmissionRepository


class NoQuestionsFoundError(LookupError):
    pass


class QuestionLockedError(PermissionError):
    pass


class QuestionNotInInterviewError(LookupError):
    pass


def resolve_current_question_index(
    questions: Sequence[InterviewQuestion],
    submitted_question_ids: Collection[int],
) -> int:
    """
    Index of the first question without a submitted attempt.
    Once every question is submitted the last one stays current.
    """
    if not questions:
        raise NoQuestionsFoundError("No questions found for this interview")

    for idx, iq in enumerate(questions):
        if iq.question_id not in submitted_question_ids:
            return idx
    return len(questions) - 1


@dataclass(frozen=True)
class InterviewProgress:
    questions: list[InterviewQuestion]
    current_question_index: int

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @property
    def revealed(self) -> list[InterviewQuestion]:
        return self.questions[: self.current_question_index + 1]

    def ensure_unlocked(self, question_id: int) -> InterviewQuestion:
        for idx, iq in enumerate(self.questions):
            if iq.question_id != question_id:
                continue
            if idx > self.current_question_index:
                raise QuestionLockedError("Complete the current question before moving on")
            return iq
        raise QuestionNotInInterviewError("Question is not part of this interview")


class ProgressAccessor:
    def __init__(
        self,
        interview_questions: InterviewQuestionRepository,
        submissions: SubmissionRepository,
    ) -> None:
        self.interview_questions = interview_questions
        self.submissions = submissions

    def get(self, interview_id: int, candidate_id: int) -> InterviewProgress:
        questions = self.interview_questions.list_for_interview(interview_id)
        submitted = self.submissions.submitted_question_ids(interview_id, candidate_id)
        current = resolve_current_question_index(questions, submitted)
        return InterviewProgress(questions=questions, current_question_index=current)
