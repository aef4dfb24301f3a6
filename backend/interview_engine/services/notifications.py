"""
In-process handoff for interview notifications.

Bulk assignment pushes one item per scheduled interview onto a bounded
queue; a single daemon thread drains it and hands each item to the Celery
task. The request never waits on delivery.
"""
from __future__ import annotations

import logging
import queue
import threading
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Callable, Optional

from interview_engine.core.config import settings

logger = logging.getLogger(__name__)

_STOP = object()


@dataclass(frozen=True)
class InterviewNotification:
    email: str
    candidate_name: str
    job_title: str
    interview_id: int
    interview_type: str
    time_slot_start: datetime
    time_slot_end: datetime
    timezone: str
    duration_minutes: int

    def to_payload(self) -> dict[str, Any]:
        data = asdict(self)
        data["time_slot_start"] = self.time_slot_start.isoformat()
        data["time_slot_end"] = self.time_slot_end.isoformat()
        return data


def render_interview_email(payload: dict[str, Any]) -> tuple[str, str]:
    name = payload.get("candidate_name") or "there"
    job_title = payload.get("job_title") or "the role"
    subject = f"Your interview for {job_title} is scheduled"
    link = f"{settings.FRONTEND_BASE_URL}/interviews/{payload.get('interview_id')}"
    body = (
        f"Hi {name},\n\n"
        f"A {payload.get('interview_type')} interview for {job_title} has been scheduled.\n\n"
        f"Window opens: {payload.get('time_slot_start')}\n"
        f"Window closes: {payload.get('time_slot_end')}\n"
        f"Timezone: {payload.get('timezone')}\n"
        f"Duration: {payload.get('duration_minutes')} minutes\n\n"
        f"Start your interview here once the window opens:\n{link}\n"
    )
    return subject, body


def _dispatch_to_task(payload: dict[str, Any]) -> None:
    from interview_engine.celery_app import enqueue
    from interview_engine.tasks.notifications import send_interview_scheduled_notification

    enqueue(send_interview_scheduled_notification, payload)


class NotificationQueue:
    def __init__(
        self,
        maxsize: Optional[int] = None,
        handler: Optional[Callable[[dict[str, Any]], None]] = None,
    ) -> None:
        self._queue: queue.Queue = queue.Queue(maxsize=maxsize if maxsize is not None else settings.NOTIFICATION_QUEUE_MAXSIZE)
        self._handler = handler or _dispatch_to_task
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._lock:
            if self.running:
                return
            self._thread = threading.Thread(target=self._run, name="notification-worker", daemon=True)
            self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        with self._lock:
            thread = self._thread
            if thread is None:
                return
            self._queue.put(_STOP)
            thread.join(timeout=timeout)
            self._thread = None

    def join(self) -> None:
        """Block until every queued notification has been handled."""
        self._queue.join()

    def submit(self, notification: InterviewNotification) -> bool:
        try:
            self._queue.put_nowait(notification.to_payload())
        except queue.Full:
            logger.warning(
                "Notification queue full; dropping notification for interview %s",
                notification.interview_id,
            )
            return False
        return True

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._handler(item)
            except Exception:  # pylint: disable=broad-except
                logger.exception("Failed to send interview notification %s", item.get("interview_id"))
            finally:
                self._queue.task_done()
