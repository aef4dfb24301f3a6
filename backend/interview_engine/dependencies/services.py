from __future__ import annotations

from typing import Generator, Optional

from fastapi import Request

from interview_engine.services.judge import JudgeClient
from interview_engine.services.notifications import NotificationQueue


def get_judge_client() -> Generator[JudgeClient, None, None]:
    client = JudgeClient.from_settings()
    try:
        yield client
    finally:
        client.close()


def get_notification_queue(request: Request) -> Optional[NotificationQueue]:
    return getattr(request.app.state, "notification_queue", None)
