from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from interview_engine.core.security import generate_placeholder_password, hash_password
from interview_engine.models.user import User, UserRole


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class UserRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == normalize_email(email)).first()

    def create_candidate(
        self,
        email: str,
        *,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        profile: Optional[dict] = None,
    ) -> User:
        user = User(
            email=normalize_email(email),
            first_name=(first_name or "").strip() or None,
            last_name=(last_name or "").strip() or None,
            role=UserRole.candidate.value,
            password_hash=hash_password(generate_placeholder_password()),
            is_active=True,
            profile=profile or {},
        )
        self.db.add(user)
        self.db.flush()
        return user
