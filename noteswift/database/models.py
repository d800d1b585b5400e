"""SQLAlchemy database models for NoteSwift."""

from datetime import datetime
import uuid
from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, Index

from noteswift.database.database import Base


def new_id() -> str:
    return str(uuid.uuid4())


class UserDB(Base):
    """Database model for User."""

    __tablename__ = "users"

    # Primary key
    id = Column(String, primary_key=True, default=new_id)

    # User profile
    email = Column(String(255), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    date_of_birth = Column(String(10), nullable=False)

    # Verification / linkage
    is_email_verified = Column(Boolean, nullable=False, default=False)
    google_id = Column(String(255), nullable=True, index=True)
    password_hash = Column(String, nullable=True)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from noteswift.models.user import User
        return User(
            id=self.id,
            email=self.email,
            name=self.name,
            date_of_birth=self.date_of_birth,
            is_email_verified=bool(self.is_email_verified),
            google_id=self.google_id,
            password_hash=self.password_hash,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_pydantic(cls, user):
        """Create database model from Pydantic model."""
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            date_of_birth=user.date_of_birth,
            is_email_verified=user.is_email_verified,
            google_id=user.google_id,
            password_hash=user.password_hash,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class NoteDB(Base):
    """Database model for Note."""

    __tablename__ = "notes"

    id = Column(String, primary_key=True, default=new_id)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from noteswift.models.note import Note
        return Note(
            id=self.id,
            user_id=self.user_id,
            title=self.title,
            content=self.content,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class OTPCodeDB(Base):
    """Database model for an emailed one-time password."""

    __tablename__ = "otp_codes"
    __table_args__ = (
        # Lookup path for redeem: (email, code) among unused rows.
        Index("ix_otp_codes_email_code", "email", "code"),
    )

    id = Column(String, primary_key=True, default=new_id)
    email = Column(String(255), nullable=False)
    code = Column(String(6), nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
    is_used = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from noteswift.models.otp import OTPCode
        return OTPCode(
            id=self.id,
            email=self.email,
            code=self.code,
            expires_at=self.expires_at,
            is_used=bool(self.is_used),
            created_at=self.created_at,
        )
