"""Note data model for NoteSwift."""

from datetime import datetime
from pydantic import BaseModel, Field


class Note(BaseModel):
    """A text note owned by exactly one user."""

    id: str = Field(..., description="Opaque note identifier")
    user_id: str = Field(..., description="User ID who owns this note")
    title: str = Field(..., description="Note title")
    content: str = Field(..., description="Note body")
    created_at: datetime = Field(..., description="Note creation timestamp")
    updated_at: datetime = Field(..., description="Note last update timestamp")
