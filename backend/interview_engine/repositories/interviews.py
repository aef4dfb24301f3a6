from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from interview_engine.models.application import Application
from interview_engine.models.interview import Interview, InterviewStatus


class InterviewRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, interview_id: int) -> Optional[Interview]:
        return self.db.query(Interview).filter(Interview.id == interview_id).first()

    def add(self, interview: Interview) -> Interview:
        self.db.add(interview)
        self.db.flush()
        return interview

    def _listing(self, status: Optional[str]):
        q = self.db.query(Interview).join(Application, Application.id == Interview.application_id)
        if status:
            q = q.filter(Interview.status == status)
        return q

    def list_for_candidate(self, candidate_id: int, status: Optional[str] = None) -> list[Interview]:
        return (
            self._listing(status)
            .filter(Application.candidate_id == candidate_id)
            .order_by(desc(Interview.scheduled_at), desc(Interview.id))
            .all()
        )

    def list_for_organization(self, organization_id: int, status: Optional[str] = None) -> list[Interview]:
        return (
            self._listing(status)
            .filter(Application.organization_id == organization_id)
            .order_by(desc(Interview.scheduled_at), desc(Interview.id))
            .all()
        )

    def count_by_status(self, created_by: int) -> dict[str, int]:
        rows = (
            self.db.query(Interview.status, func.count(Interview.id))
            .filter(Interview.created_by == created_by)
            .group_by(Interview.status)
            .all()
        )
        return {status: int(count) for status, count in rows}

    def list_overdue(self, now: datetime) -> list[Interview]:
        return (
            self.db.query(Interview)
            .filter(
                Interview.status.in_([InterviewStatus.pending.value, InterviewStatus.scheduled.value]),
                Interview.time_slot_end < now,
            )
            .all()
        )
