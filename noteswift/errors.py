"""Error taxonomy for NoteSwift.

Every error the API reports derives from `NoteSwiftError` and carries the HTTP
status it maps to plus a user-facing message. Internal details (SQL errors,
SMTP replies, provider responses) are logged where they occur and never end up
in `message`.
"""

from typing import Any, Dict, List, Optional


class NoteSwiftError(Exception):
    """Base class for errors rendered as `{"message": ..., "errors": [...]}`."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[Dict[str, Any]]] = None):
        self.message = message or self.default_message
        self.errors = errors or []
        super().__init__(self.message)

    def to_response(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"message": self.message}
        if self.errors:
            body["errors"] = self.errors
        return body


class ValidationError(NoteSwiftError):
    """Malformed or missing input, with field-level detail."""

    status_code = 400
    default_message = "Validation error"


# Domain failures

class AuthDomainError(NoteSwiftError):
    """A well-formed auth request that the account state does not allow."""

    status_code = 400


class AccountAlreadyExistsError(AuthDomainError):
    status_code = 400
    default_message = "User already exists with this email"


class AccountNotFoundError(AuthDomainError):
    status_code = 404
    default_message = "No account found with this email. Please sign up first."


class AccountNotVerifiedError(AuthDomainError):
    status_code = 401
    default_message = "Please verify your email before logging in"


class InvalidOTPError(AuthDomainError):
    status_code = 400
    default_message = "Invalid or expired verification code"


class InvalidAssertionError(AuthDomainError):
    status_code = 400
    default_message = "Google authentication failed"


class OAuthExchangeFailedError(AuthDomainError):
    status_code = 400
    default_message = "Failed to authenticate with Google"


# Authorization failures

class AuthzError(NoteSwiftError):
    status_code = 401


class MissingTokenError(AuthzError):
    status_code = 401
    default_message = "Access token required"


class InvalidTokenError(AuthzError):
    """Token rejected. Subclasses say why; clients only ever see the shared message."""

    status_code = 403
    default_message = "Invalid or expired token"


class TokenInvalidError(InvalidTokenError):
    """Bad signature, malformed structure or missing claims."""


class TokenExpiredError(InvalidTokenError):
    """Correctly signed but past its expiry."""


# Downstream failures

class ServiceUnavailableError(NoteSwiftError):
    status_code = 500
    default_message = "Service temporarily unavailable. Please try again later."


class EmailDeliveryError(Exception):
    """Raised by email senders when a message could not be handed off."""


class NoteNotFoundError(NoteSwiftError):
    status_code = 404
    default_message = "Note not found"


def field_errors(exc) -> List[Dict[str, Any]]:
    """Flatten a pydantic/FastAPI validation exception into `[{field, message}]`."""
    out: List[Dict[str, Any]] = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        out.append({"field": ".".join(loc), "message": err.get("msg", "Invalid value")})
    return out
