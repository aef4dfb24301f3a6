from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from interview_engine.models.job import Job


class JobRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_for_organization(self, job_id: int, organization_id: int) -> Optional[Job]:
        return (
            self.db.query(Job)
            .filter(Job.id == job_id, Job.organization_id == organization_id)
            .first()
        )
