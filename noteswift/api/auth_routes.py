"""Authentication endpoints: email OTP signup/login and Google sign-in."""

import os
import logging
from urllib.parse import urlencode
from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session
from dotenv import load_dotenv

from noteswift.api.auth_models import (
    AuthResponse,
    EmailRequest,
    GoogleCodeExchangeRequest,
    GoogleTokenRequest,
    LoginStartedResponse,
    MessageResponse,
    SignupRequest,
    SignupStartedResponse,
    UserPayload,
    VerifyOTPRequest,
)
from noteswift.auth.dependencies import get_auth_service, get_current_claims, get_google_client
from noteswift.auth.google_oauth import GoogleOAuthClient, generate_state
from noteswift.auth.jwt import TokenClaims
from noteswift.auth.service import AuthResult, AuthService
from noteswift.database.database import get_db
from noteswift.database.user_repository import UserRepository
from noteswift.errors import AccountNotFoundError, NoteSwiftError

load_dotenv()

logger = logging.getLogger(__name__)

FRONTEND_URL = os.getenv("FRONTEND_URL", "/")
OAUTH_STATE_COOKIE = "noteswift_oauth_state"
OAUTH_STATE_MAX_AGE_SECONDS = 600

router = APIRouter(prefix="/auth", tags=["auth"])


def _auth_response(result: AuthResult) -> AuthResponse:
    return AuthResponse(
        message=result.message,
        token=result.token,
        user=UserPayload(**result.user.public_profile()),
    )


def _frontend_redirect(**params) -> RedirectResponse:
    base = FRONTEND_URL.rstrip("/")
    return RedirectResponse(f"{base}/?{urlencode(params)}", status_code=302)


@router.post("/signup", response_model=SignupStartedResponse)
def signup(payload: SignupRequest, auth: AuthService = Depends(get_auth_service)):
    """Start signup: send a verification code to a new email."""
    started = auth.start_signup(payload)
    return SignupStartedResponse(
        message=started.message,
        email=started.email,
        temp_data=started.temp_data.to_client(),
    )


@router.post("/verify-otp", response_model=AuthResponse)
def verify_signup_otp(payload: VerifyOTPRequest, auth: AuthService = Depends(get_auth_service)):
    """Finish signup: redeem the code and create the verified account."""
    result = auth.complete_signup(payload.email, payload.code, payload.temp_data)
    return _auth_response(result)


@router.post("/login", response_model=LoginStartedResponse)
def login(payload: EmailRequest, auth: AuthService = Depends(get_auth_service)):
    """Start login: send a verification code to a verified account."""
    email = auth.start_login(payload.email)
    return LoginStartedResponse(message="Verification code sent to your email", email=email)


@router.post("/verify-login-otp", response_model=AuthResponse)
def verify_login_otp(payload: VerifyOTPRequest, auth: AuthService = Depends(get_auth_service)):
    """Finish login: redeem the code and issue a session token."""
    result = auth.complete_login(payload.email, payload.code)
    return _auth_response(result)


@router.post("/resend-otp", response_model=MessageResponse)
def resend_otp(payload: EmailRequest, auth: AuthService = Depends(get_auth_service)):
    """Send another code for either flow."""
    auth.resend_otp(payload.email)
    return MessageResponse(message="New verification code sent to your email")


@router.get("/google")
def google_auth_redirect(google: GoogleOAuthClient = Depends(get_google_client)):
    """Redirect the browser to Google's consent screen."""
    state = generate_state()
    response = RedirectResponse(google.build_authorization_url(state=state), status_code=302)
    response.set_cookie(
        OAUTH_STATE_COOKIE,
        state,
        max_age=OAUTH_STATE_MAX_AGE_SECONDS,
        httponly=True,
        samesite="lax",
    )
    return response


@router.post("/google", response_model=AuthResponse)
def google_token_login(payload: GoogleTokenRequest, auth: AuthService = Depends(get_auth_service)):
    """Sign in with a Google ID token obtained by the browser."""
    result = auth.login_with_google_assertion(payload.token)
    return _auth_response(result)


@router.post("/google/code-exchange", response_model=AuthResponse)
def google_code_exchange(payload: GoogleCodeExchangeRequest, auth: AuthService = Depends(get_auth_service)):
    """Sign in with a Google authorization code obtained by a popup code client."""
    result = auth.login_with_google_code(payload.code)
    return _auth_response(result)


@router.get("/google/callback")
def google_callback(
    request: Request,
    code: str = "",
    state: str = "",
    error: str = "",
    auth: AuthService = Depends(get_auth_service),
):
    """OAuth redirect target: exchange the code and hand the token to the frontend."""
    expected_state = request.cookies.get(OAUTH_STATE_COOKIE)
    if error or not code:
        logger.warning(f"Google callback without code (error={error or 'none'})")
        return _frontend_redirect(error="google_auth_failed")
    if not expected_state or state != expected_state:
        logger.warning("Google callback state mismatch")
        return _frontend_redirect(error="google_auth_failed")

    try:
        result = auth.login_with_google_code(code)
    except NoteSwiftError as e:
        logger.error(f"Google callback error: {type(e).__name__}")
        return _frontend_redirect(error="google_auth_failed")
    except Exception:
        logger.exception("Unexpected error completing Google callback")
        return _frontend_redirect(error="google_auth_failed")

    response = _frontend_redirect(token=result.token)
    response.delete_cookie(OAUTH_STATE_COOKIE)
    return response


@router.get("/me", response_model=UserPayload)
def me(claims: TokenClaims = Depends(get_current_claims), db: Session = Depends(get_db)):
    """Profile of the token's user."""
    user = UserRepository(db).get(claims.user_id)
    if not user:
        raise AccountNotFoundError("User not found")
    return UserPayload(**user.public_profile())
