"""Note CRUD endpoints. All of them act only on the token owner's notes."""

from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from noteswift.api.auth_models import MessageResponse
from noteswift.api.note_models import CreateNoteRequest, NoteResponse, UpdateNoteRequest
from noteswift.auth.dependencies import get_current_claims
from noteswift.auth.jwt import TokenClaims
from noteswift.database.database import get_db
from noteswift.database.note_repository import NoteRepository
from noteswift.errors import NoteNotFoundError

router = APIRouter(prefix="/notes", tags=["notes"])


@router.get("", response_model=List[NoteResponse])
def list_notes(claims: TokenClaims = Depends(get_current_claims), db: Session = Depends(get_db)):
    notes = NoteRepository(db).get_all(claims.user_id)
    return [NoteResponse.from_note(note) for note in notes]


@router.post("", response_model=NoteResponse, status_code=201)
def create_note(
    payload: CreateNoteRequest,
    claims: TokenClaims = Depends(get_current_claims),
    db: Session = Depends(get_db),
):
    note = NoteRepository(db).create(claims.user_id, payload.title, payload.content)
    return NoteResponse.from_note(note)


@router.get("/{note_id}", response_model=NoteResponse)
def get_note(note_id: str, claims: TokenClaims = Depends(get_current_claims), db: Session = Depends(get_db)):
    note = NoteRepository(db).get(claims.user_id, note_id)
    if not note:
        raise NoteNotFoundError()
    return NoteResponse.from_note(note)


@router.put("/{note_id}", response_model=NoteResponse)
def update_note(
    note_id: str,
    payload: UpdateNoteRequest,
    claims: TokenClaims = Depends(get_current_claims),
    db: Session = Depends(get_db),
):
    note = NoteRepository(db).update(
        claims.user_id,
        note_id,
        title=payload.title,
        content=payload.content,
    )
    if not note:
        raise NoteNotFoundError()
    return NoteResponse.from_note(note)


@router.delete("/{note_id}", response_model=MessageResponse)
def delete_note(note_id: str, claims: TokenClaims = Depends(get_current_claims), db: Session = Depends(get_db)):
    if not NoteRepository(db).delete(claims.user_id, note_id):
        raise NoteNotFoundError()
    return MessageResponse(message="Note deleted successfully")
