from __future__ import annotations

import logging
from typing import Any

from interview_engine.celery_app import NOTIFICATION_TASK, celery_app
from interview_engine.services.email import EmailDeliveryError, EmailNotConfiguredError, send_email
from interview_engine.services.notifications import render_interview_email


logger = logging.getLogger(__name__)


@celery_app.task(name=NOTIFICATION_TASK, max_retries=3)
def send_interview_scheduled_notification(payload: dict[str, Any]) -> bool:
    to_email = payload.get("email")
    if not to_email:
        logger.warning("Interview notification %s has no recipient", payload.get("interview_id"))
        return False

    subject, body = render_interview_email(payload)
    try:
        send_email(to_email, subject, body)
    except (EmailDeliveryError, EmailNotConfiguredError):
        logger.exception("Interview notification %s could not be delivered", payload.get("interview_id"))
        return False
    return True
