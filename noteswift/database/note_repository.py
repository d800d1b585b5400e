"""Repository for Note database operations.

Every query filters on the owner as well as the note id, so a note id on its
own never reads or changes another user's note.
"""

import logging
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import desc

from noteswift.models.note import Note
from noteswift.database.models import NoteDB, new_id

logger = logging.getLogger(__name__)


class NoteRepository:
    """Repository for Note database operations."""

    def __init__(self, db: Session):
        self.db = db

    def _owned(self, user_id: str, note_id: str) -> Optional[NoteDB]:
        return self.db.query(NoteDB).filter(
            NoteDB.id == note_id,
            NoteDB.user_id == user_id,
        ).first()

    def create(self, user_id: str, title: str, content: str) -> Note:
        """Create a new note for a user."""
        now = datetime.utcnow()
        note_db = NoteDB(
            id=new_id(),
            user_id=user_id,
            title=title,
            content=content,
            created_at=now,
            updated_at=now,
        )
        try:
            self.db.add(note_db)
            self.db.commit()
            self.db.refresh(note_db)
            logger.debug(f"Created note {note_db.id}: {title[:50]}")
            return note_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create note for user {user_id}: {type(e).__name__}: {str(e)}")
            raise

    def get(self, user_id: str, note_id: str) -> Optional[Note]:
        """Get note by ID for a specific user."""
        note_db = self._owned(user_id, note_id)
        return note_db.to_pydantic() if note_db else None

    def get_all(self, user_id: str) -> List[Note]:
        """Get all notes for a user sorted by creation date (newest first)."""
        notes_db = self.db.query(NoteDB).filter(
            NoteDB.user_id == user_id,
        ).order_by(desc(NoteDB.created_at)).all()
        return [note_db.to_pydantic() for note_db in notes_db]

    def update(
        self,
        user_id: str,
        note_id: str,
        *,
        title: Optional[str] = None,
        content: Optional[str] = None,
    ) -> Optional[Note]:
        """Update title and/or content. Returns None if the user owns no such note."""
        note_db = self._owned(user_id, note_id)
        if not note_db:
            return None
        if title is not None:
            note_db.title = title
        if content is not None:
            note_db.content = content
        note_db.updated_at = datetime.utcnow()
        try:
            self.db.commit()
            self.db.refresh(note_db)
            logger.debug(f"Updated note {note_id}")
            return note_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update note {note_id}: {type(e).__name__}: {str(e)}")
            raise

    def delete(self, user_id: str, note_id: str) -> bool:
        """Delete a note. Returns False if the user owns no such note."""
        affected = self.db.query(NoteDB).filter(
            NoteDB.id == note_id,
            NoteDB.user_id == user_id,
        ).delete(synchronize_session=False)
        self.db.commit()
        if affected:
            logger.debug(f"Deleted note {note_id}")
        return bool(affected)
