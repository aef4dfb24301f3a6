from __future__ import annotations

import random

import pytest
from sqlalchemy.exc import IntegrityError

from interview_engine.models.interview_question import InterviewQuestion
from interview_engine.repositories.interview_questions import InterviewQuestionRepository
from interview_engine.repositories.questions import QuestionRepository
from interview_engine.services.question_assigner import InsufficientQuestionPoolError, QuestionAssigner


def _assigner(db_session, seed=7):
    return QuestionAssigner(
        QuestionRepository(db_session),
        InterviewQuestionRepository(db_session),
        rng=random.Random(seed),
    )


def _levels(rows):
    return [r.question.level for r in sorted(rows, key=lambda r: r.order_index)]


def test_assigns_medium_then_easy(db_session, interview_factory, question_factory):
    question_factory("M1", "Medium")
    question_factory("M2", "Medium")
    question_factory("E1", "Easy")
    question_factory("H1", "Hard")
    iv = interview_factory()

    rows = _assigner(db_session).assign(iv.id)
    db_session.commit()

    stored = InterviewQuestionRepository(db_session).list_for_interview(iv.id)
    assert len(rows) == 2
    assert [r.order_index for r in stored] == [0, 1]
    assert _levels(stored) == ["Medium", "Easy"]
    assert all(r.time_limit == 30 for r in stored)


def test_falls_back_to_two_distinct_medium(db_session, interview_factory, question_factory, caplog):
    question_factory("M1", "Medium")
    question_factory("M2", "Medium")
    iv = interview_factory()

    rows = _assigner(db_session).assign(iv.id)
    db_session.commit()

    assert len({r.question_id for r in rows}) == 2
    assert "two Medium" in caplog.text


def test_falls_back_to_two_distinct_easy(db_session, interview_factory, question_factory):
    question_factory("E1", "Easy")
    question_factory("E2", "Easy")
    question_factory("H1", "Hard")
    iv = interview_factory()

    rows = _assigner(db_session).assign(iv.id)
    db_session.commit()

    stored = InterviewQuestionRepository(db_session).list_for_interview(iv.id)
    assert len({r.question_id for r in rows}) == 2
    assert _levels(stored) == ["Easy", "Easy"]


def test_falls_back_to_any_two_active(db_session, interview_factory, question_factory):
    question_factory("H1", "Hard")
    question_factory("E1", "Easy")
    question_factory("Inactive", "Medium", is_active=False)
    iv = interview_factory()

    _assigner(db_session).assign(iv.id)
    db_session.commit()

    stored = InterviewQuestionRepository(db_session).list_for_interview(iv.id)
    assert sorted(r.question.name for r in stored) == ["E1", "H1"]


def test_insufficient_pool_writes_nothing(db_session, interview_factory, question_factory):
    question_factory("M1", "Medium")
    iv = interview_factory()

    with pytest.raises(InsufficientQuestionPoolError):
        _assigner(db_session).assign(iv.id)
    db_session.commit()

    assert db_session.query(InterviewQuestion).count() == 0


def test_assigning_twice_is_idempotent(db_session, interview_factory, question_pool):
    iv = interview_factory()

    first = _assigner(db_session, seed=1).assign(iv.id)
    db_session.commit()
    second = _assigner(db_session, seed=2).assign(iv.id)
    db_session.commit()

    assert [r.id for r in first] == [r.id for r in second]
    assert db_session.query(InterviewQuestion).filter(InterviewQuestion.interview_id == iv.id).count() == 2


def test_unique_constraint_rejects_duplicate_pair(db_session, interview_factory, question_pool):
    iv = interview_factory()
    repo = InterviewQuestionRepository(db_session)
    repo.create(interview_id=iv.id, question_id=question_pool["easy"].id, order_index=0)
    db_session.commit()

    repo.create(interview_id=iv.id, question_id=question_pool["easy"].id, order_index=1)
    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()
