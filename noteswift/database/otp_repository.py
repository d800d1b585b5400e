"""Repository for OTP code database operations."""

import logging
from datetime import datetime
from typing import Optional
from sqlalchemy import desc, or_
from sqlalchemy.orm import Session

from noteswift.models.otp import OTPCode
from noteswift.database.models import OTPCodeDB, new_id

logger = logging.getLogger(__name__)


class OTPRepository:
    """Repository for OTP code database operations."""

    def __init__(self, db: Session):
        self.db = db

    def _valid_query(self, email: str, code: str, now: datetime):
        return self.db.query(OTPCodeDB).filter(
            OTPCodeDB.email == email,
            OTPCodeDB.code == code,
            OTPCodeDB.is_used.is_(False),
            OTPCodeDB.expires_at >= now,
        )

    def create(self, email: str, code: str, expires_at: datetime, *, created_at: Optional[datetime] = None) -> OTPCode:
        """Persist a freshly issued code."""
        row = OTPCodeDB(
            id=new_id(),
            email=email,
            code=code,
            expires_at=expires_at,
            is_used=False,
            created_at=created_at or datetime.utcnow(),
        )
        try:
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            logger.debug(f"Created OTP record {row.id} for {email}")
            return row.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create OTP record for {email}: {type(e).__name__}: {str(e)}")
            raise

    def delete(self, otp_id: str) -> None:
        self.db.query(OTPCodeDB).filter(OTPCodeDB.id == otp_id).delete(synchronize_session=False)
        self.db.commit()

    def find_valid(self, email: str, code: str, now: datetime) -> Optional[OTPCode]:
        """Newest unused, unexpired record matching email and code exactly."""
        row = self._valid_query(email, code, now).order_by(desc(OTPCodeDB.created_at)).first()
        return row.to_pydantic() if row else None

    def mark_used(self, otp_id: str) -> None:
        """Mark a record used. Marking an already-used record again is a no-op."""
        self.db.query(OTPCodeDB).filter(OTPCodeDB.id == otp_id).update(
            {OTPCodeDB.is_used: True}, synchronize_session=False
        )
        self.db.commit()

    def consume_valid(self, email: str, code: str, now: datetime) -> Optional[OTPCode]:
        """Atomically redeem a matching code.

        The flip from unused to used is a conditional UPDATE on the row, so when
        two requests race for the same code exactly one of them sees a row
        affected; the other gets None.
        """
        candidate = self.find_valid(email, code, now)
        if candidate is None:
            return None
        affected = self.db.query(OTPCodeDB).filter(
            OTPCodeDB.id == candidate.id,
            OTPCodeDB.is_used.is_(False),
            OTPCodeDB.expires_at >= now,
        ).update({OTPCodeDB.is_used: True}, synchronize_session=False)
        self.db.commit()
        if affected != 1:
            logger.debug(f"OTP record {candidate.id} was redeemed concurrently")
            return None
        return candidate.model_copy(update={"is_used": True})

    def delete_expired_or_used(self, now: datetime) -> int:
        """Delete every record that is expired or already used.

        Returns number of rows deleted.
        """
        affected = self.db.query(OTPCodeDB).filter(
            or_(OTPCodeDB.expires_at < now, OTPCodeDB.is_used.is_(True))
        ).delete(synchronize_session=False)
        self.db.commit()
        return int(affected)
