"""Authentication flows for NoteSwift.

`AuthService` coordinates the OTP issuer, the token service and the Google
client. A session token is only ever issued after one of:

- a valid, unexpired, single-use OTP was redeemed for the email, or
- Google verified an identity assertion for it.

Signup and login are two-step flows (request -> awaiting OTP -> verified).
Nothing about a pending flow is stored server-side; the OTP record is the only
state. Resend simply issues another code. Google sign-in is single-shot.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Optional

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from noteswift.auth.google_oauth import ExternalIdentity, GoogleOAuthClient
from noteswift.auth.jwt import TokenService
from noteswift.auth.otp import OTPIssuer
from noteswift.database.user_repository import UserRepository, normalize_email
from noteswift.errors import (
    AccountAlreadyExistsError,
    AccountNotFoundError,
    AccountNotVerifiedError,
    EmailDeliveryError,
    InvalidOTPError,
    OAuthExchangeFailedError,
    ServiceUnavailableError,
    ValidationError,
    field_errors,
)
from noteswift.models.signup import SignupData
from noteswift.models.user import PLACEHOLDER_DATE_OF_BIRTH, User

logger = logging.getLogger(__name__)


class SignupStarted(BaseModel):
    """Returned when a signup code has been sent."""
    message: str
    email: str
    temp_data: SignupData


class AuthResult(BaseModel):
    """A freshly issued session for a user."""
    message: str
    token: str
    user: User


@contextmanager
def downstream_failures(action: str):
    """Report store and email faults as ServiceUnavailableError.

    Details are logged here and never reach the caller.
    """
    try:
        yield
    except EmailDeliveryError as e:
        logger.error(f"{action} failed: email delivery error: {str(e)}")
        raise ServiceUnavailableError("Failed to send verification email") from e
    except SQLAlchemyError as e:
        logger.error(f"{action} failed: {type(e).__name__}: {str(e)}")
        raise ServiceUnavailableError() from e


class AuthService:
    """Signup, login, resend and Google sign-in flows."""

    def __init__(
        self,
        users: UserRepository,
        otp: OTPIssuer,
        tokens: TokenService,
        google: Optional[GoogleOAuthClient] = None,
    ):
        self.users = users
        self.otp = otp
        self.tokens = tokens
        self.google = google

    # Session issuance

    def _issue_session(self, user: User, message: str) -> AuthResult:
        token = self.tokens.issue(user.id, user.email)
        logger.info(f"Issued session token for user {user.id}")
        return AuthResult(message=message, token=token, user=user)

    def _redeem_or_fail(self, email: str, code: str) -> None:
        otp = self.otp.redeem(email, code)
        if otp is None:
            logger.info(f"Rejected verification code for {email}")
            raise InvalidOTPError()

    # Signup

    def start_signup(self, data: SignupData) -> SignupStarted:
        """Send a signup code unless the email already has an account."""
        with downstream_failures("Signup"):
            if self.users.get_by_email(data.email):
                raise AccountAlreadyExistsError()
            self.otp.issue(data.email)
        return SignupStarted(
            message="Verification code sent to your email",
            email=data.email,
            temp_data=data,
        )

    def complete_signup(self, email: str, code: str, temp_data: Optional[Dict[str, Any]]) -> AuthResult:
        """Redeem the signup code and create the verified account.

        `temp_data` is the payload returned by `start_signup`, replayed by the
        client. It is validated again and must belong to the verified email.
        """
        email = normalize_email(email)
        if not temp_data:
            raise ValidationError(errors=[{"field": "tempData", "message": "Signup details are required"}])
        try:
            pending = SignupData.model_validate(temp_data)
        except PydanticValidationError as e:
            raise ValidationError(errors=[
                {"field": f"tempData.{err['field']}", "message": err["message"]} for err in field_errors(e)
            ]) from e
        if pending.email != email:
            raise ValidationError(errors=[{"field": "tempData.email", "message": "Email does not match the verified email"}])

        with downstream_failures("Signup verification"):
            if self.users.get_by_email(email):
                raise AccountAlreadyExistsError()
            self._redeem_or_fail(email, code)
            try:
                user = self.users.create(
                    email=email,
                    name=pending.name,
                    date_of_birth=pending.date_of_birth,
                    is_email_verified=True,
                )
            except IntegrityError:
                # Another request created the account between the check and the insert.
                raise AccountAlreadyExistsError() from None
        return self._issue_session(user, "Email verified successfully")

    # Login

    def start_login(self, email: str) -> str:
        """Send a login code to an existing, verified account."""
        email = normalize_email(email)
        with downstream_failures("Login"):
            user = self.users.get_by_email(email)
            if not user:
                raise AccountNotFoundError()
            if not user.is_email_verified:
                raise AccountNotVerifiedError()
            self.otp.issue(email)
        return email

    def complete_login(self, email: str, code: str) -> AuthResult:
        """Redeem the login code and issue a session for the existing user."""
        email = normalize_email(email)
        with downstream_failures("Login verification"):
            self._redeem_or_fail(email, code)
            user = self.users.get_by_email(email)
        if not user:
            raise AccountNotFoundError("User not found")
        return self._issue_session(user, "Login successful")

    # Resend

    def resend_otp(self, email: str) -> None:
        """Issue another code. Earlier codes stay valid until they expire."""
        with downstream_failures("Resend OTP"):
            self.otp.issue(email)

    # Google

    def _require_google(self) -> GoogleOAuthClient:
        if self.google is None:
            logger.error("Google sign-in requested but no Google client is configured")
            raise OAuthExchangeFailedError()
        return self.google

    def login_with_google_assertion(self, id_token_str: str) -> AuthResult:
        identity = self._require_google().resolve_from_assertion(id_token_str)
        return self._sign_in_external(identity)

    def login_with_google_code(self, code: str) -> AuthResult:
        identity = self._require_google().resolve_from_authorization_code(code)
        return self._sign_in_external(identity)

    def _sign_in_external(self, identity: ExternalIdentity) -> AuthResult:
        """Find, link or create the local account for a Google identity."""
        email = normalize_email(identity.email)
        with downstream_failures("Google sign-in"):
            user = self.users.get_by_email(email)
            if user is None:
                user = self.users.create(
                    email=email,
                    name=identity.name or email.split("@")[0],
                    date_of_birth=PLACEHOLDER_DATE_OF_BIRTH,
                    is_email_verified=True,
                    google_id=identity.subject,
                )
                logger.info(f"Created user {user.id} from Google sign-in")
            elif user.google_id != identity.subject:
                if user.google_id:
                    logger.warning(
                        f"Replacing Google link on user {user.id}: a different Google account asserted {email}"
                    )
                user = self.users.link_google_id(user.id, identity.subject)
                if user is None:
                    raise AccountNotFoundError("User not found")
                logger.info(f"Linked Google account to user {user.id}")
        return self._issue_session(user, "Google authentication successful")
