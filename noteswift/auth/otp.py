"""One-time password issuing and redemption for NoteSwift."""

import os
import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable, Optional
from dotenv import load_dotenv

from noteswift.database.otp_repository import OTPRepository
from noteswift.database.user_repository import normalize_email
from noteswift.errors import EmailDeliveryError
from noteswift.integrations.email import EmailSender
from noteswift.models.otp import OTPCode, OTP_CODE_LENGTH

load_dotenv()

logger = logging.getLogger(__name__)

OTP_EXPIRE_MINUTES = int(os.getenv("OTP_EXPIRE_MINUTES", "10"))


def generate_otp_code() -> str:
    """Uniformly random 6-digit code; leading zeros are kept."""
    return f"{secrets.randbelow(10 ** OTP_CODE_LENGTH):0{OTP_CODE_LENGTH}d}"


class OTPIssuer:
    """Issues, verifies and redeems emailed verification codes.

    Args:
        repository: OTP persistence bound to the current DB session
        sender: Email transport used to deliver codes (None for housekeeping-only use)
        expire_minutes: Code lifetime (defaults to OTP_EXPIRE_MINUTES)
        clock: Returns the current naive-UTC time (defaults to datetime.utcnow)
    """

    def __init__(
        self,
        repository: OTPRepository,
        sender: Optional[EmailSender],
        expire_minutes: Optional[int] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.repository = repository
        self.sender = sender
        self.expire_minutes = expire_minutes or OTP_EXPIRE_MINUTES
        self.clock = clock or datetime.utcnow

    def issue(self, email: str) -> OTPCode:
        """Persist a new code for `email` and deliver it.

        Raises:
            EmailDeliveryError: if the code could not be sent. The stored record
                is removed first so no undeliverable code lingers.
        """
        if self.sender is None:
            raise RuntimeError("OTPIssuer was constructed without an email sender")
        email = normalize_email(email)
        now = self.clock()
        otp = self.repository.create(
            email=email,
            code=generate_otp_code(),
            expires_at=now + timedelta(minutes=self.expire_minutes),
            created_at=now,
        )
        try:
            self.sender.send_otp(email, otp.code, self.expire_minutes)
        except EmailDeliveryError:
            self.repository.delete(otp.id)
            raise
        logger.info(f"Issued OTP {otp.id} for {email}")
        return otp

    def verify(self, email: str, code: str) -> Optional[OTPCode]:
        """Return the matching unused, unexpired record, or None."""
        return self.repository.find_valid(normalize_email(email), code, self.clock())

    def consume(self, otp_id: str) -> None:
        """Mark a record used. Idempotent."""
        self.repository.mark_used(otp_id)

    def redeem(self, email: str, code: str) -> Optional[OTPCode]:
        """Verify and consume in one conditional update; None if no code was redeemed."""
        return self.repository.consume_valid(normalize_email(email), code, self.clock())

    def sweep(self) -> int:
        """Delete expired and used records. Returns number of rows deleted."""
        deleted = self.repository.delete_expired_or_used(self.clock())
        if deleted:
            logger.info(f"Swept {deleted} expired or used OTP records")
        return deleted
