from __future__ import annotations

from fastapi.testclient import TestClient


def _assert_error_shape(res, *, error: str | None = None):
    data = res.json()
    assert isinstance(data, dict)
    assert isinstance(data.get("error"), str) and data["error"]
    assert isinstance(data.get("message"), str) and data["message"]
    if error is not None:
        assert data["error"] == error
    return data


def test_error_shape_401_missing_token(app):
    with TestClient(app) as c:
        res = c.get("/interviews/candidate")
    assert res.status_code == 401
    _assert_error_shape(res, error="UNAUTHORIZED")
    assert res.headers.get("WWW-Authenticate") == "Bearer"


def test_error_shape_403_wrong_role(client_for, recruiter):
    with client_for(recruiter) as c:
        res = c.get("/interviews/candidate")
    assert res.status_code == 403
    _assert_error_shape(res, error="FORBIDDEN")


def test_error_shape_404_interview_not_found(client_for, candidate):
    with client_for(candidate) as c:
        res = c.get("/interviews/999999")
    assert res.status_code == 404
    data = _assert_error_shape(res, error="NOT_FOUND")
    assert data["message"] == "Interview not found"


def test_error_shape_409_invalid_transition(client_for, candidate, interview_factory):
    iv = interview_factory(status="completed")
    with client_for(candidate) as c:
        res = c.post(f"/interviews/{iv.id}/cancel")
    assert res.status_code == 409
    _assert_error_shape(res, error="CONFLICT")


def test_error_shape_422_request_validation_error(client_for, candidate):
    with client_for(candidate) as c:
        res = c.post("/interviews/run-code", json={"question_id": "abc", "code": "x", "language": "python"})
    assert res.status_code == 422
    body = _assert_error_shape(res, error="VALIDATION_ERROR")
    assert isinstance(body.get("details"), dict)
    assert isinstance(body["details"].get("errors"), list)


def test_health(app):
    with TestClient(app) as c:
        res = c.get("/health")
    assert res.status_code == 200
    assert res.json() == {"status": "ok"}
