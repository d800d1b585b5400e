"""FastAPI dependencies for authentication.

Long-lived collaborators (email sender, Google client, token service) are
built once by `create_app` and kept on `app.state`; the providers below hand
them to request handlers, and tests can replace any of them.
"""

import logging
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from noteswift.auth.google_oauth import GoogleOAuthClient
from noteswift.auth.jwt import TokenClaims, TokenService
from noteswift.auth.otp import OTPIssuer
from noteswift.auth.service import AuthService
from noteswift.database.database import get_db
from noteswift.database.otp_repository import OTPRepository
from noteswift.database.user_repository import UserRepository
from noteswift.errors import InvalidTokenError, MissingTokenError
from noteswift.integrations.email import EmailSender

logger = logging.getLogger(__name__)

# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_email_sender(request: Request) -> EmailSender:
    return request.app.state.email_sender


def get_google_client(request: Request) -> GoogleOAuthClient:
    return request.app.state.google_client


def get_auth_service(
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
    sender: EmailSender = Depends(get_email_sender),
    google: GoogleOAuthClient = Depends(get_google_client),
) -> AuthService:
    """Build the auth flows around the request's DB session."""
    return AuthService(
        users=UserRepository(db),
        otp=OTPIssuer(OTPRepository(db), sender),
        tokens=tokens,
        google=google,
    )


def get_current_claims(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    tokens: TokenService = Depends(get_token_service),
) -> TokenClaims:
    """Get the identity carried by the request's bearer token.

    Raises:
        MissingTokenError: no bearer token (401)
        InvalidTokenError: bad signature, malformed or expired token (403);
            the client sees the same message in every case
    """
    if not credentials or not credentials.credentials:
        raise MissingTokenError()

    try:
        return tokens.verify(credentials.credentials)
    except InvalidTokenError as e:
        logger.warning(f"Rejected bearer token ({type(e).__name__}): {e.message}")
        raise InvalidTokenError() from e
