"""Repository for User database operations."""

import logging
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session

from noteswift.models.user import User
from noteswift.database.models import UserDB, new_id

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class UserRepository:
    """Repository for User database operations."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: str) -> Optional[User]:
        """Get user by ID."""
        user_db = self.db.query(UserDB).filter(UserDB.id == user_id).first()
        return user_db.to_pydantic() if user_db else None

    def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email."""
        user_db = self.db.query(UserDB).filter(UserDB.email == normalize_email(email)).first()
        return user_db.to_pydantic() if user_db else None

    def create(
        self,
        email: str,
        name: str,
        date_of_birth: str,
        *,
        is_email_verified: bool = False,
        google_id: Optional[str] = None,
    ) -> User:
        """Create a new user.

        Raises:
            sqlalchemy.exc.IntegrityError: if the email is already taken
        """
        now = datetime.utcnow()
        user = User(
            id=new_id(),
            email=normalize_email(email),
            name=name,
            date_of_birth=date_of_birth,
            is_email_verified=is_email_verified,
            google_id=google_id,
            created_at=now,
            updated_at=now,
        )
        try:
            user_db = UserDB.from_pydantic(user)
            self.db.add(user_db)
            self.db.commit()
            self.db.refresh(user_db)
            logger.debug(f"Created user {user.id}: {user.email}")
            return user_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create user {user.email}: {type(e).__name__}: {str(e)}")
            raise

    def link_google_id(self, user_id: str, google_id: str) -> Optional[User]:
        """Attach (or replace) the Google subject id on an existing user."""
        user_db = self.db.query(UserDB).filter(UserDB.id == user_id).first()
        if not user_db:
            return None
        user_db.google_id = google_id
        user_db.updated_at = datetime.utcnow()
        try:
            self.db.commit()
            self.db.refresh(user_db)
            logger.debug(f"Linked Google account to user {user_id}")
            return user_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to link Google account to user {user_id}: {type(e).__name__}: {str(e)}")
            raise
