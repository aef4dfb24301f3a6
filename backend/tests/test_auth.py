from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient
from jose import jwt

from interview_engine.core import config as app_config
from interview_engine.core.security import create_access_token


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def test_access_token_authenticates_candidate(app, candidate, interview_factory):
    iv = interview_factory()
    token = create_access_token(candidate.email)

    with TestClient(app) as c:
        res = c.get("/interviews/candidate", headers=_bearer(token))

    assert res.status_code == 200
    assert [row["id"] for row in res.json()] == [iv.id]


def test_email_subject_is_case_insensitive(app, candidate):
    token = create_access_token(candidate.email.upper())

    with TestClient(app) as c:
        res = c.get("/interviews/candidate", headers=_bearer(token))

    assert res.status_code == 200


def test_expired_token_is_rejected(app, candidate):
    settings = app_config.settings
    past = datetime.now(timezone.utc) - timedelta(hours=2)
    token = jwt.encode(
        {
            "sub": candidate.email,
            "purpose": "access",
            "iat": int(past.timestamp()),
            "exp": int((past + timedelta(minutes=5)).timestamp()),
        },
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )

    with TestClient(app) as c:
        res = c.get("/interviews/candidate", headers=_bearer(token))

    assert res.status_code == 401
    assert res.json()["message"] == "Invalid or expired token"


def test_wrong_purpose_is_rejected(app, candidate):
    settings = app_config.settings
    token = jwt.encode(
        {"sub": candidate.email, "purpose": "password_reset", "exp": int(datetime.now(timezone.utc).timestamp()) + 600},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )

    with TestClient(app) as c:
        res = c.get("/interviews/candidate", headers=_bearer(token))

    assert res.status_code == 401


def test_unknown_and_inactive_users_are_rejected(app, candidate, db_session):
    with TestClient(app) as c:
        res = c.get("/interviews/candidate", headers=_bearer(create_access_token("ghost@example.com")))
        assert res.status_code == 401
        assert res.json()["message"] == "User not found"

        candidate.is_active = False
        db_session.commit()
        res = c.get("/interviews/candidate", headers=_bearer(create_access_token(candidate.email)))
        assert res.status_code == 401
        assert res.json()["message"] == "User is inactive"
