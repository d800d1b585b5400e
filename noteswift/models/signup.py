"""Signup payload shared by the signup request and the verification step."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

MIN_SIGNUP_AGE = 13
MAX_SIGNUP_AGE = 120


class SignupData(BaseModel):
    """Account details collected at signup.

    The server does not store these between signup and OTP verification; the
    client replays them, and they are validated again on the way back in.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=255)
    date_of_birth: str = Field(..., alias="dateOfBirth", description="YYYY-MM-DD")
    email: EmailStr

    @field_validator("name")
    @classmethod
    def _validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("date_of_birth")
    @classmethod
    def _validate_date_of_birth(cls, v: str) -> str:
        try:
            born = date.fromisoformat(v.strip())
        except ValueError:
            raise ValueError("Please enter a valid date of birth")
        age = date.today().year - born.year
        if age < MIN_SIGNUP_AGE or age > MAX_SIGNUP_AGE:
            raise ValueError(f"You must be at least {MIN_SIGNUP_AGE} years old")
        return born.isoformat()

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, v: str) -> str:
        return v.strip().lower()

    def to_client(self) -> dict:
        return {"name": self.name, "dateOfBirth": self.date_of_birth, "email": self.email}
