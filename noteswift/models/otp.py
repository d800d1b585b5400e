"""One-time password record model for NoteSwift."""

from datetime import datetime
from pydantic import BaseModel, Field


OTP_CODE_LENGTH = 6


class OTPCode(BaseModel):
    """A single emailed verification code.

    Several codes may exist for the same email at once; each one is valid on its
    own until it expires or is used.
    """

    id: str = Field(..., description="Opaque OTP record identifier")
    email: str = Field(..., description="Email address the code was sent to")
    code: str = Field(..., min_length=OTP_CODE_LENGTH, max_length=OTP_CODE_LENGTH, description="Fixed-width numeric code")
    expires_at: datetime = Field(..., description="Last instant at which the code is accepted")
    is_used: bool = Field(False, description="Set once the code has been redeemed")
    created_at: datetime = Field(..., description="Issue timestamp")
