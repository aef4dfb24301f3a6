import base64
import json
import os
from datetime import datetime, timedelta, timezone

# Settings are read at import time: JWT secret must exist and the engine must not point at postgres.
os.environ.setdefault("JWT_SECRET", "test_jwt_secret")
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

from contextlib import contextmanager

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
import importlib

from interview_engine.core.base import Base
from interview_engine.core import config as app_config
from interview_engine.core.security import hash_password

# Import models so they register with SQLAlchemy metadata.
from interview_engine.models.organization import Organization
from interview_engine.models.user import User, UserRole
from interview_engine.models.job import Job
from interview_engine.models.application import Application
from interview_engine.models.interview import Interview, InterviewStatus
from interview_engine.models.question import Question
from interview_engine.models.interview_question import InterviewQuestion  # noqa: F401
from interview_engine.models.submission import Submission  # noqa: F401

from interview_engine.core.database import get_db, get_session_factory
from interview_engine.dependencies.auth import get_current_user
from interview_engine.dependencies.services import get_judge_client, get_notification_queue
from interview_engine.services.judge import JudgeClient


@pytest.fixture(scope="session")
def db_engine():
    # In-memory SQLite for fast, isolated tests.
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture()
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture()
def db_session(db_engine, session_factory):
    # The in-memory DB persists across tests (StaticPool); reset schema per test.
    Base.metadata.drop_all(bind=db_engine)
    Base.metadata.create_all(bind=db_engine)

    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def _reset_mutable_settings():
    """
    Tests sometimes tweak global settings; restore them after each test.
    """
    keys = [
        "RATE_LIMIT_ENABLED",
        "CODE_RATE_LIMIT_MAX_REQUESTS",
        "BULK_ASSIGN_MAX_WORKERS",
        "EMAIL_ENABLED",
    ]
    original = {k: getattr(app_config.settings, k) for k in keys}
    # StaticPool shares one SQLite connection, so bulk workers run one at a time in tests.
    app_config.settings.BULK_ASSIGN_MAX_WORKERS = 1
    try:
        yield
    finally:
        for k, v in original.items():
            setattr(app_config.settings, k, v)


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def submit(self, notification):
        self.sent.append(notification)
        return True


@pytest.fixture()
def notifier():
    return RecordingNotifier()


def _make_judge_client(handler) -> JudgeClient:
    """JudgeClient wired to an httpx.MockTransport; polling never sleeps."""
    return JudgeClient(
        "http://judge.test",
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
        poll_interval=0,
        max_poll_attempts=3,
        test_case_timeout=30,
        sleep=lambda _seconds: None,
    )


@pytest.fixture()
def judge_client_factory():
    return _make_judge_client


def _b64(text):
    return base64.b64encode((text or "").encode("utf-8")).decode("ascii") if text else None


class FakeJudge:
    """
    Judge0 stand-in for httpx.MockTransport.

    `responder(source, stdin)` returns a dict with any of: status_id, stdout,
    stderr, compile_output, time, memory. The first `pending_polls` status
    requests for each token report "Processing".
    """

    def __init__(self, responder, pending_polls=0):
        self.responder = responder
        self.pending_polls = pending_polls
        self.submissions = {}
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if request.method == "POST" and path == "/submissions":
            body = json.loads(request.content)
            token = f"tok-{len(self.submissions) + 1}"
            self.submissions[token] = {
                "source": base64.b64decode(body["source_code"]).decode("utf-8"),
                "stdin": base64.b64decode(body["stdin"]).decode("utf-8"),
                "language_id": body["language_id"],
                "polls": 0,
            }
            return httpx.Response(201, json={"token": token})

        if request.method == "GET" and path.startswith("/submissions/"):
            sub = self.submissions[path.rsplit("/", 1)[-1]]
            sub["polls"] += 1
            if sub["polls"] <= self.pending_polls:
                return httpx.Response(200, json={"status": {"id": 2, "description": "Processing"}})
            result = self.responder(sub["source"], sub["stdin"])
            return httpx.Response(
                200,
                json={
                    "status": {"id": result.get("status_id", 3), "description": "done"},
                    "stdout": _b64(result.get("stdout")),
                    "stderr": _b64(result.get("stderr")),
                    "compile_output": _b64(result.get("compile_output")),
                    "time": result.get("time", "0.010"),
                    "memory": result.get("memory", 1024),
                },
            )

        return httpx.Response(404, json={"error": "not found"})


def adder(source, stdin):
    """Programs containing `SOLVED` print the sum of the stdin ints; anything else prints 0."""
    if "SOLVED" not in source:
        return {"stdout": "0\n"}
    return {"stdout": f"{sum(int(p) for p in stdin.split())}\n"}


@pytest.fixture()
def fake_judge():
    return FakeJudge(adder)


@pytest.fixture()
def fake_judge_cls():
    return FakeJudge


@pytest.fixture()
def app(db_session, session_factory, notifier):
    app_config.settings.JWT_SECRET = app_config.settings.JWT_SECRET or "test_jwt_secret"

    import interview_engine.main as main

    importlib.reload(main)
    fastapi_app = main.app

    def override_get_db():
        yield db_session

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_session_factory] = lambda: session_factory
    fastapi_app.dependency_overrides[get_notification_queue] = lambda: notifier
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture()
def use_judge(app):
    """
    Route the judge dependency through a MockTransport handler.

    Usage:
        use_judge(handler)
    """

    def _use(handler):
        app.dependency_overrides[get_judge_client] = lambda: _make_judge_client(handler)

    return _use


@pytest.fixture()
def organization(db_session):
    org = Organization(name="Acme")
    db_session.add(org)
    db_session.commit()
    db_session.refresh(org)
    return org


def _user(db_session, email, role, organization_id=None, first_name=None):
    user = User(
        email=email,
        first_name=first_name,
        role=role,
        organization_id=organization_id,
        password_hash=hash_password("test_password_123"),
        is_active=True,
        profile={},
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture()
def recruiter(db_session, organization):
    return _user(db_session, "recruiter@acme.example.com", UserRole.recruiter.value, organization.id, "Rita")


@pytest.fixture()
def other_recruiter(db_session):
    org = Organization(name="Globex")
    db_session.add(org)
    db_session.commit()
    return _user(db_session, "recruiter@globex.example.com", UserRole.recruiter.value, org.id, "Gary")


@pytest.fixture()
def candidate(db_session):
    return _user(db_session, "cand@example.com", UserRole.candidate.value, first_name="Casey")


@pytest.fixture()
def other_candidate(db_session):
    return _user(db_session, "other@example.com", UserRole.candidate.value, first_name="Olive")


@pytest.fixture()
def job(db_session, organization, recruiter):
    row = Job(organization_id=organization.id, created_by=recruiter.id, title="Backend Engineer")
    db_session.add(row)
    db_session.commit()
    db_session.refresh(row)
    return row


def _make_question(db_session, name, level, *, test_cases=None, is_active=True):
    cases = test_cases or [("1 2", "3"), ("2 2", "4"), ("5 5", "10")]
    cases = list(cases) + [("", "")] * (3 - len(cases))
    q = Question(
        name=name,
        level=level,
        problem_statement=f"Solve {name}",
        input_format="two ints",
        output_format="one int",
        constraints="none",
        input_example=cases[0][0],
        output_example=cases[0][1],
        explanation="add them",
        topic="math",
        time_limit=30,
        is_active=is_active,
        test_case_1_input=cases[0][0],
        test_case_1_output=cases[0][1],
        test_case_2_input=cases[1][0],
        test_case_2_output=cases[1][1],
        test_case_3_input=cases[2][0],
        test_case_3_output=cases[2][1],
    )
    db_session.add(q)
    db_session.commit()
    db_session.refresh(q)
    return q


@pytest.fixture()
def question_pool(db_session):
    return {
        "medium": _make_question(db_session, "Two Sum", "Medium"),
        "easy": _make_question(db_session, "Add Numbers", "Easy"),
    }


def _make_interview(
    db_session,
    *,
    job,
    candidate,
    recruiter,
    interview_type="coding",
    status=InterviewStatus.pending.value,
    slot_start=None,
    duration_minutes=60,
):
    application = (
        db_session.query(Application)
        .filter(Application.job_id == job.id, Application.candidate_id == candidate.id)
        .first()
    )
    if application is None:
        application = Application(
            job_id=job.id,
            candidate_id=candidate.id,
            organization_id=job.organization_id,
            recruiter_id=recruiter.id,
        )
        db_session.add(application)
        db_session.flush()

    start = slot_start or (datetime.now(timezone.utc) - timedelta(minutes=5))
    iv = Interview(
        application_id=application.id,
        created_by=recruiter.id,
        scheduled_at=start,
        mode="live",
        status=status,
        duration_minutes=duration_minutes,
        timezone="UTC",
        interview_type=interview_type,
        time_slot_start=start,
        time_slot_end=start + timedelta(minutes=duration_minutes),
    )
    db_session.add(iv)
    db_session.commit()
    db_session.refresh(iv)
    return iv


@pytest.fixture()
def question_factory(db_session):
    def _factory(name, level, **kwargs):
        return _make_question(db_session, name, level, **kwargs)

    return _factory


@pytest.fixture()
def interview_factory(db_session, job, candidate, recruiter):
    """
    Interviews for `job`; candidate/recruiter default to the shared fixtures.
    """

    def _factory(**kwargs):
        kwargs.setdefault("job", job)
        kwargs.setdefault("candidate", candidate)
        kwargs.setdefault("recruiter", recruiter)
        return _make_interview(db_session, **kwargs)

    return _factory


@pytest.fixture()
def client_for(app):
    """
    Context manager to create a client authenticated as an arbitrary user.

    Usage:
        with client_for(user) as c:
            ...
    """

    @contextmanager
    def _client_for(user: User):
        app.dependency_overrides[get_current_user] = lambda: user
        with TestClient(app) as c:
            yield c
        app.dependency_overrides.pop(get_current_user, None)

    return _client_for
