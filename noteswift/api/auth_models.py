"""Request/response models for authentication endpoints."""

from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from noteswift.models.signup import SignupData
from noteswift.models.otp import OTP_CODE_LENGTH


OTP_CODE_PATTERN = rf"^\d{{{OTP_CODE_LENGTH}}}$"


class SignupRequest(SignupData):
    """Request model for starting a signup."""


class EmailRequest(BaseModel):
    """Request model carrying only an email (login, resend)."""
    email: EmailStr


class VerifyOTPRequest(BaseModel):
    """Request model for OTP verification."""

    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    code: str = Field(..., pattern=OTP_CODE_PATTERN, description="6-digit verification code")
    temp_data: Optional[Dict[str, Any]] = Field(
        None, alias="tempData", description="Signup details returned by /auth/signup (signup only)"
    )


class GoogleTokenRequest(BaseModel):
    """Request model for signing in with a Google ID token."""
    token: str = Field(..., min_length=1, description="Google ID token from the browser sign-in flow")


class GoogleCodeExchangeRequest(BaseModel):
    """Request model for Google OAuth authorization-code exchange."""
    code: str = Field(..., min_length=1, description="Google OAuth authorization code")


class UserPayload(BaseModel):
    id: str
    name: str
    email: str


class MessageResponse(BaseModel):
    message: str


class LoginStartedResponse(BaseModel):
    message: str
    email: str


class SignupStartedResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    email: str
    temp_data: Dict[str, Any] = Field(..., alias="tempData")


class AuthResponse(BaseModel):
    """Response model for authentication."""
    message: str
    token: str
    user: UserPayload
