"""Data models for NoteSwift."""

from noteswift.models.user import User, PLACEHOLDER_DATE_OF_BIRTH
from noteswift.models.note import Note
from noteswift.models.otp import OTPCode, OTP_CODE_LENGTH

__all__ = [
    "User",
    "PLACEHOLDER_DATE_OF_BIRTH",
    "Note",
    "OTPCode",
    "OTP_CODE_LENGTH",
]
