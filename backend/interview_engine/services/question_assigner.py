from __future__ import annotations

import logging
import random
from typing import Optional

from interview_engine.models.interview_question import InterviewQuestion
from interview_engine.models.question import Question, QuestionLevel
from interview_engine.repositories.interview_questions import InterviewQuestionRepository
from interview_engine.repositories.questions import QuestionRepository

logger = logging.getLogger(__name__)

QUESTIONS_PER_INTERVIEW = 2


class InsufficientQuestionPoolError(RuntimeError):
    def __init__(self, available: int) -> None:
        super().__init__(
            f"At least {QUESTIONS_PER_INTERVIEW} active questions are required, found {available}"
        )
        self.available = available


class QuestionAssigner:
    """
    Binds two questions to a coding interview: Medium first, then Easy.

    Falls back to two Medium, then two Easy, then any two active questions
    when the pool is thin. Rows are added to the session but not committed.
    """

    def __init__(
        self,
        questions: QuestionRepository,
        interview_questions: InterviewQuestionRepository,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.questions = questions
        self.interview_questions = interview_questions
        self.rng = rng or random.Random()

    def select(self) -> list[Question]:
        medium = self.questions.list_active(QuestionLevel.medium.value)
        easy = self.questions.list_active(QuestionLevel.easy.value)

        if medium and easy:
            return [self.rng.choice(medium), self.rng.choice(easy)]

        if len(medium) >= 2:
            logger.warning("No Easy questions available; assigning two Medium questions")
            return self.rng.sample(medium, 2)

        if len(easy) >= 2:
            logger.warning("No Medium questions available; assigning two Easy questions")
            return self.rng.sample(easy, 2)

        pool = self.questions.list_active()
        if len(pool) < QUESTIONS_PER_INTERVIEW:
            raise InsufficientQuestionPoolError(len(pool))

        logger.warning("Medium/Easy pool too small; assigning any %s active questions", QUESTIONS_PER_INTERVIEW)
        return self.rng.sample(pool, QUESTIONS_PER_INTERVIEW)

    def assign(self, interview_id: int) -> list[InterviewQuestion]:
        existing = self.interview_questions.list_for_interview(interview_id)
        if existing:
            logger.info("Interview %s already has %s questions; skipping assignment", interview_id, len(existing))
            return existing

        picked = self.select()
        rows = [
            self.interview_questions.create(
                interview_id=interview_id,
                question_id=q.id,
                order_index=idx,
                time_limit=q.time_limit,
            )
            for idx, q in enumerate(picked)
        ]
        logger.info(
            "Assigned questions %s to interview %s",
            [q.id for q in picked],
            interview_id,
        )
        return rows
