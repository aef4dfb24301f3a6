from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone

from interview_engine.core import config as app_config
from interview_engine.services import email as email_service
from interview_engine.services.notifications import InterviewNotification, NotificationQueue, render_interview_email
from interview_engine.tasks import notifications as notification_tasks


def _notification(interview_id=1, email="cand@example.com"):
    return InterviewNotification(
        email=email,
        candidate_name="Casey",
        job_title="Backend Engineer",
        interview_id=interview_id,
        interview_type="coding",
        time_slot_start=datetime(2026, 6, 1, 9, 0, tzinfo=timezone.utc),
        time_slot_end=datetime(2026, 6, 1, 10, 0, tzinfo=timezone.utc),
        timezone="UTC",
        duration_minutes=60,
    )


def test_payload_is_json_friendly():
    payload = _notification().to_payload()
    assert payload["time_slot_start"] == "2026-06-01T09:00:00+00:00"
    assert payload["email"] == "cand@example.com"
    assert payload["interview_id"] == 1


def test_render_interview_email():
    subject, body = render_interview_email(_notification(interview_id=42).to_payload())

    assert subject == "Your interview for Backend Engineer is scheduled"
    assert body.startswith("Hi Casey,")
    assert "2026-06-01T09:00:00+00:00" in body
    assert "Duration: 60 minutes" in body
    assert body.rstrip().endswith("/interviews/42")


def test_queue_delivers_in_order():
    seen = []
    q = NotificationQueue(maxsize=10, handler=seen.append)
    q.start()
    try:
        for i in range(3):
            assert q.submit(_notification(interview_id=i)) is True
        q.join()
    finally:
        q.stop()

    assert [p["interview_id"] for p in seen] == [0, 1, 2]
    assert q.running is False


def test_full_queue_drops_with_warning(caplog):
    caplog.set_level(logging.WARNING, logger="interview_engine.services.notifications")
    q = NotificationQueue(maxsize=1, handler=lambda payload: None)

    assert q.submit(_notification(interview_id=1)) is True
    assert q.submit(_notification(interview_id=2)) is False
    assert any("dropping notification for interview 2" in r.getMessage() for r in caplog.records)


def test_handler_failure_does_not_stop_worker(caplog):
    caplog.set_level(logging.ERROR, logger="interview_engine.services.notifications")
    delivered = []
    done = threading.Event()

    def handler(payload):
        if payload["interview_id"] == 1:
            raise RuntimeError("provider down")
        delivered.append(payload["interview_id"])
        done.set()

    q = NotificationQueue(maxsize=10, handler=handler)
    q.start()
    try:
        q.submit(_notification(interview_id=1))
        q.submit(_notification(interview_id=2))
        assert done.wait(timeout=5)
        q.join()
    finally:
        q.stop()

    assert delivered == [2]
    assert any("Failed to send interview notification 1" in r.getMessage() for r in caplog.records)


def test_task_skips_send_when_email_disabled(monkeypatch):
    app_config.settings.EMAIL_ENABLED = False
    calls = []
    monkeypatch.setattr(email_service.resend.Emails, "send", lambda payload: calls.append(payload))

    assert notification_tasks.send_interview_scheduled_notification(_notification().to_payload()) is True
    assert calls == []


def test_task_sends_via_provider(monkeypatch):
    sent = []
    monkeypatch.setattr(notification_tasks, "send_email", lambda to, subject, body: sent.append((to, subject)) or "msg_1")

    assert notification_tasks.send_interview_scheduled_notification(_notification().to_payload()) is True
    assert sent == [("cand@example.com", "Your interview for Backend Engineer is scheduled")]


def test_task_reports_delivery_failure(monkeypatch):
    def boom(to, subject, body):
        raise email_service.EmailDeliveryError("Resend send failed: 500")

    monkeypatch.setattr(notification_tasks, "send_email", boom)

    assert notification_tasks.send_interview_scheduled_notification(_notification().to_payload()) is False


def test_task_without_recipient():
    payload = _notification().to_payload()
    payload["email"] = ""
    assert notification_tasks.send_interview_scheduled_notification(payload) is False
