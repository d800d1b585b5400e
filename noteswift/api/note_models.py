"""Request/response models for note endpoints."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from noteswift.models.note import Note


def _non_blank(v: Optional[str], label: str) -> Optional[str]:
    if v is not None and not v.strip():
        raise ValueError(f"{label} is required")
    return v


class CreateNoteRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)

    @field_validator("title")
    @classmethod
    def _validate_title(cls, v):
        return _non_blank(v, "Title")

    @field_validator("content")
    @classmethod
    def _validate_content(cls, v):
        return _non_blank(v, "Content")


class UpdateNoteRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    content: Optional[str] = Field(None, min_length=1)

    @field_validator("title")
    @classmethod
    def _validate_title(cls, v):
        return _non_blank(v, "Title")

    @field_validator("content")
    @classmethod
    def _validate_content(cls, v):
        return _non_blank(v, "Content")

    @model_validator(mode="after")
    def _require_one_field(self):
        if self.title is None and self.content is None:
            raise ValueError("At least one field must be provided")
        return self


class NoteResponse(BaseModel):
    """Note as returned to the client (camelCase keys)."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    content: str
    user_id: str = Field(..., alias="userId")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")

    @classmethod
    def from_note(cls, note: Note) -> "NoteResponse":
        return cls(
            id=note.id,
            title=note.title,
            content=note.content,
            user_id=note.user_id,
            created_at=note.created_at,
            updated_at=note.updated_at,
        )
