"""User data model for NoteSwift."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


# Google sign-ups never supply a date of birth.
PLACEHOLDER_DATE_OF_BIRTH = "1990-01-01"


class User(BaseModel):
    """User model for NoteSwift."""
    
    id: str = Field(..., description="Opaque user identifier")
    email: str = Field(..., description="User email address (unique, lower-cased)")
    name: str = Field(..., description="User display name")
    date_of_birth: str = Field(..., description="Date of birth (YYYY-MM-DD)")
    is_email_verified: bool = Field(False, description="Whether the user proved control of the email address")
    google_id: Optional[str] = Field(None, description="Linked Google subject id")
    password_hash: Optional[str] = Field(None, description="Legacy password hash (unused by login flows)")
    created_at: datetime = Field(..., description="User creation timestamp")
    updated_at: datetime = Field(..., description="User last update timestamp")

    def public_profile(self) -> dict:
        """Profile fields that are safe to return to the client."""
        return {"id": self.id, "name": self.name, "email": self.email}
