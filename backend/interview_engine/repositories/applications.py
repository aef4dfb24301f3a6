from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from interview_engine.models.application import Application


class ApplicationRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_for_job_and_candidate(self, job_id: int, candidate_id: int) -> Optional[Application]:
        return (
            self.db.query(Application)
            .filter(Application.job_id == job_id, Application.candidate_id == candidate_id)
            .first()
        )

    def create(
        self,
        *,
        job_id: int,
        candidate_id: int,
        organization_id: int,
        recruiter_id: int,
        notes: Optional[str] = None,
    ) -> Application:
        app_row = Application(
            job_id=job_id,
            candidate_id=candidate_id,
            organization_id=organization_id,
            recruiter_id=recruiter_id,
            notes=notes,
        )
        self.db.add(app_row)
        self.db.flush()
        return app_row
