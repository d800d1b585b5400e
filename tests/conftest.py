"""Pytest fixtures and configuration for NoteSwift tests."""

import pytest
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from noteswift.auth.google_oauth import ExternalIdentity, GoogleOAuthClient
from noteswift.auth.jwt import TokenService
from noteswift.auth.otp import OTPIssuer
from noteswift.auth.service import AuthService
from noteswift.database.database import Base
from noteswift.database import models
from noteswift.database.note_repository import NoteRepository
from noteswift.database.otp_repository import OTPRepository
from noteswift.database.user_repository import UserRepository
from noteswift.errors import InvalidAssertionError
from noteswift.integrations.email import EmailSender


# Use in-memory SQLite database for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


class FakeClock:
    """Settable clock; call it to read the current time."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingEmailSender(EmailSender):
    """Keeps every sent code instead of emailing it."""

    def __init__(self):
        self.sent: List[Tuple[str, str, int]] = []
        self.fail_with: Optional[Exception] = None

    def send_otp(self, to_email: str, otp_code: str, expire_minutes: int) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append((to_email, otp_code, expire_minutes))

    def codes_for(self, email: str) -> List[str]:
        return [code for to, code, _ in self.sent if to == email]

    def last_code_for(self, email: str) -> str:
        codes = self.codes_for(email)
        assert codes, f"no code was sent to {email}"
        return codes[-1]


class StubGoogleClient(GoogleOAuthClient):
    """Google client that maps known tokens/codes to identities without network calls."""

    def __init__(self):
        super().__init__(client_id="test-client-id", client_secret="test-secret", redirect_uri="http://testserver/api/auth/google/callback")
        self.assertions = {}
        self.codes = {}

    def resolve_from_assertion(self, id_token_str: str) -> ExternalIdentity:
        if id_token_str not in self.assertions:
            raise InvalidAssertionError()
        return self.assertions[id_token_str]

    def resolve_from_authorization_code(self, code: str) -> ExternalIdentity:
        if code not in self.codes:
            raise InvalidAssertionError()
        return self.codes[code]


@pytest.fixture(scope="function")
def db_engine():
    """In-memory SQLite engine shared across threads, fresh per test."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db_session(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def user_repository(db_session: Session):
    return UserRepository(db_session)


@pytest.fixture
def note_repository(db_session: Session):
    return NoteRepository(db_session)


@pytest.fixture
def otp_repository(db_session: Session):
    return OTPRepository(db_session)


@pytest.fixture
def otp_count(db_session: Session):
    """Number of stored OTP records for an email, used or not."""

    def _count(email: str) -> int:
        return db_session.query(models.OTPCodeDB).filter(models.OTPCodeDB.email == email).count()

    return _count


@pytest.fixture
def user_with_google_id(db_session: Session):
    """Look up the user currently linked to a Google subject id."""

    def _lookup(google_id: str):
        row = db_session.query(models.UserDB).filter(models.UserDB.google_id == google_id).first()
        return row.to_pydantic() if row else None

    return _lookup


@pytest.fixture
def otp_clock():
    """Naive-UTC clock for OTP expiry."""
    return FakeClock(datetime(2026, 1, 15, 12, 0, 0))


@pytest.fixture
def token_clock():
    """Aware-UTC clock for session tokens."""
    return FakeClock(datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def email_sender():
    return RecordingEmailSender()


@pytest.fixture
def google_client():
    return StubGoogleClient()


@pytest.fixture
def token_service(token_clock):
    return TokenService(secret_key="test-secret-key", clock=token_clock)


@pytest.fixture
def otp_issuer(otp_repository, email_sender, otp_clock):
    return OTPIssuer(otp_repository, email_sender, expire_minutes=10, clock=otp_clock)


@pytest.fixture
def auth_service(user_repository, otp_issuer, token_service, google_client):
    return AuthService(
        users=user_repository,
        otp=otp_issuer,
        tokens=token_service,
        google=google_client,
    )


@pytest.fixture
def verified_user(user_repository):
    return user_repository.create(
        email="ann@example.com",
        name="Ann",
        date_of_birth="2000-01-01",
        is_email_verified=True,
    )


@pytest.fixture
def unverified_user(user_repository):
    return user_repository.create(
        email="bob@example.com",
        name="Bob",
        date_of_birth="1995-05-05",
        is_email_verified=False,
    )


@pytest.fixture
def test_client(db_session: Session, email_sender, google_client):
    """FastAPI test client with an in-memory database and fake collaborators.

    Tokens use the real clock here so requests made with them are accepted.
    """
    from noteswift.api.app import create_app
    from noteswift.database.database import get_db

    app = create_app(
        email_sender=email_sender,
        google_client=google_client,
        token_service=TokenService(secret_key="test-secret-key"),
        init_database=False,
        start_sweeper=False,
    )

    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Don't close the session here, let the fixture handle it

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(test_client, email_sender):
    """Sign up a fresh user through the API and return its bearer header."""

    def _make(email: str = "writer@example.com", name: str = "Writer") -> dict:
        r = test_client.post(
            "/api/auth/signup",
            json={"name": name, "dateOfBirth": "1990-06-15", "email": email},
        )
        assert r.status_code == 200
        code = email_sender.last_code_for(email)
        r = test_client.post(
            "/api/auth/verify-otp",
            json={"email": email, "code": code, "tempData": r.json()["tempData"]},
        )
        assert r.status_code == 200
        return {"Authorization": f"Bearer {r.json()['token']}"}

    return _make
