from __future__ import annotations

import logging

from celery import Celery

from interview_engine.core.config import settings


logger = logging.getLogger(__name__)

BROKER_CONFIGURED = bool(settings.NOTIFICATIONS_SQS_QUEUE_URL)

if BROKER_CONFIGURED and not settings.AWS_REGION:
    logger.warning("Notifications queue configured but AWS_REGION missing; defaulting to us-east-1")

TASK_QUEUE = "interview-tasks"
EXPIRE_OVERDUE_TASK = "interviews.expire_overdue"
NOTIFICATION_TASK = "notifications.interview_scheduled"

celery_app = Celery("interview-engine", include=["interview_engine.tasks.notifications", "interview_engine.tasks.interviews"])

if BROKER_CONFIGURED:
    broker_url = "sqs://"
    broker_options = {
        "region": settings.AWS_REGION or "us-east-1",
        "visibility_timeout": 60 * 5,
        "queue_name_prefix": "",
        "predefined_queues": {
            TASK_QUEUE: {
                "url": settings.NOTIFICATIONS_SQS_QUEUE_URL,
            }
        },
    }
else:
    broker_url = "memory://"
    broker_options = {}
    logger.warning("NOTIFICATIONS_SQS_QUEUE_URL is not configured; Celery will run in in-memory mode.")

celery_app.conf.update(
    broker_url=broker_url,
    result_backend=None,
    task_default_queue=TASK_QUEUE,
    task_routes={
        "notifications.*": {"queue": TASK_QUEUE},
        "interviews.*": {"queue": TASK_QUEUE},
    },
    task_serializer="json",
    accept_content=["json"],
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    broker_connection_retry_on_startup=True,
    timezone="UTC",
    enable_utc=True,
    beat_schedule={
        "expire-overdue-interviews": {
            "task": EXPIRE_OVERDUE_TASK,
            "schedule": float(settings.EXPIRE_SWEEP_INTERVAL_SECONDS),
            # A sweep still queued when the next one is due is redundant.
            "options": {"expires": settings.EXPIRE_SWEEP_INTERVAL_SECONDS},
        }
    },
)

if broker_options:
    celery_app.conf.broker_transport_options = broker_options

# Email providers throttle per account; keep the worker under their send rate.
if settings.NOTIFICATION_TASK_RATE_LIMIT:
    celery_app.conf.task_annotations = {NOTIFICATION_TASK: {"rate_limit": settings.NOTIFICATION_TASK_RATE_LIMIT}}


def enqueue(task, *args, **kwargs):
    """
    Enqueue when a broker is configured; otherwise run the task inline
    in the calling thread.
    """
    if BROKER_CONFIGURED:
        return task.delay(*args, **kwargs)
    logger.info("Celery broker not configured; running %s synchronously", task.name)
    return task.apply(args=args, kwargs=kwargs)
