"""Google OAuth2 client for user authentication."""

import os
import logging
import secrets
from typing import Optional
from urllib.parse import urlencode

import requests
from google.oauth2 import id_token
from google.auth import exceptions as google_exceptions
from google.auth.transport import requests as google_requests
from pydantic import BaseModel
from dotenv import load_dotenv

from noteswift.errors import InvalidAssertionError, OAuthExchangeFailedError, ServiceUnavailableError

load_dotenv()

logger = logging.getLogger(__name__)

# Google OAuth configuration
GOOGLE_OAUTH_CLIENT_ID = os.getenv("GOOGLE_OAUTH_CLIENT_ID")
GOOGLE_OAUTH_CLIENT_SECRET = os.getenv("GOOGLE_OAUTH_CLIENT_SECRET")
GOOGLE_OAUTH_REDIRECT_URI = os.getenv(
    "GOOGLE_OAUTH_REDIRECT_URI", "http://localhost:8000/api/auth/google/callback"
)
GOOGLE_HTTP_TIMEOUT_SECONDS = float(os.getenv("GOOGLE_HTTP_TIMEOUT_SECONDS", "10"))

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")
LOGIN_SCOPES = ["openid", "email", "profile"]


class ExternalIdentity(BaseModel):
    """Identity asserted by Google for a signed-in user."""
    subject: str
    email: str
    name: Optional[str] = None


def generate_state() -> str:
    """Generate a random state token for CSRF protection.

    Returns:
        Random state token string
    """
    return secrets.token_urlsafe(32)


class GoogleOAuthClient:
    """Resolves Google ID tokens and authorization codes into verified identities."""

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        redirect_uri: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.client_id = client_id or GOOGLE_OAUTH_CLIENT_ID
        self.client_secret = client_secret or GOOGLE_OAUTH_CLIENT_SECRET
        self.redirect_uri = redirect_uri or GOOGLE_OAUTH_REDIRECT_URI
        self.timeout = timeout or GOOGLE_HTTP_TIMEOUT_SECONDS

    def build_authorization_url(self, state: Optional[str] = None) -> str:
        """Google consent screen URL for the login scopes."""
        params = {
            "client_id": self.client_id or "",
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(LOGIN_SCOPES),
            "access_type": "offline",
        }
        if state:
            params["state"] = state
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    def resolve_from_assertion(self, id_token_str: str) -> ExternalIdentity:
        """Verify a Google ID token and extract user information.

        Args:
            id_token_str: Google ID token string

        Returns:
            ExternalIdentity (subject id, email, name)

        Raises:
            InvalidAssertionError: signature, audience, issuer or claims invalid
            ServiceUnavailableError: Google's signing certificates could not be fetched
        """
        if not self.client_id:
            logger.error("GOOGLE_OAUTH_CLIENT_ID is not configured; rejecting Google token")
            raise InvalidAssertionError()
        try:
            idinfo = id_token.verify_oauth2_token(
                id_token_str,
                google_requests.Request(),
                self.client_id,
            )
        except google_exceptions.TransportError as e:
            logger.error(f"Could not reach Google to verify token: {type(e).__name__}: {str(e)}")
            raise ServiceUnavailableError() from e
        except (ValueError, google_exceptions.GoogleAuthError) as e:
            logger.warning(f"Error verifying Google token: {str(e)}")
            raise InvalidAssertionError() from e

        if idinfo.get("iss") not in GOOGLE_ISSUERS:
            logger.warning(f"Google token has unexpected issuer: {idinfo.get('iss')}")
            raise InvalidAssertionError()

        subject = idinfo.get("sub")
        email = idinfo.get("email")
        if not subject or not email:
            logger.warning("Google token is missing subject or email")
            raise InvalidAssertionError()
        if idinfo.get("email_verified") is False:
            logger.warning(f"Google reports email {email} as unverified")
            raise InvalidAssertionError()

        return ExternalIdentity(
            subject=subject,
            email=email,
            name=idinfo.get("name") or email.split("@")[0],
        )

    def resolve_from_authorization_code(self, code: str) -> ExternalIdentity:
        """Exchange an authorization code for tokens, then verify the returned ID token.

        Raises:
            OAuthExchangeFailedError: token endpoint failed or returned no ID token
            InvalidAssertionError: returned ID token did not verify
            ServiceUnavailableError: Google's signing certificates could not be fetched
        """
        try:
            token_resp = requests.post(
                GOOGLE_TOKEN_URL,
                data={
                    "code": code,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "redirect_uri": self.redirect_uri,
                    "grant_type": "authorization_code",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Google token exchange failed: {type(e).__name__}: {str(e)}")
            raise OAuthExchangeFailedError() from e

        if not token_resp.ok:
            logger.error(f"Google token exchange rejected: {token_resp.status_code} {token_resp.text[:200]}")
            raise OAuthExchangeFailedError()

        try:
            payload = token_resp.json()
        except ValueError as e:
            logger.error(f"Google token exchange returned a non-JSON body: {str(e)}")
            raise OAuthExchangeFailedError() from e

        raw_id_token = payload.get("id_token") if isinstance(payload, dict) else None
        if not raw_id_token:
            logger.error("No ID token received from Google")
            raise OAuthExchangeFailedError()

        return self.resolve_from_assertion(raw_id_token)
