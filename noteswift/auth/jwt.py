"""JWT session token generation and validation for NoteSwift."""

import os
import jwt
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from pydantic import BaseModel
from dotenv import load_dotenv

from noteswift.errors import TokenExpiredError, TokenInvalidError

load_dotenv()

# JWT configuration
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me-in-production")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRATION_DAYS = int(os.getenv("JWT_EXPIRATION_DAYS", "7"))


class TokenClaims(BaseModel):
    """Identity carried by a verified session token."""
    user_id: str
    email: str
    issued_at: datetime
    expires_at: datetime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    """Issues and verifies signed, self-contained session tokens.

    Verification is stateless: no revocation store is consulted.
    """

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        expiration: Optional[timedelta] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.secret_key = secret_key or JWT_SECRET_KEY
        self.algorithm = algorithm or JWT_ALGORITHM
        self.expiration = expiration or timedelta(days=JWT_EXPIRATION_DAYS)
        self.clock = clock or _utcnow

    def issue(self, user_id: str, email: str) -> str:
        """Create a signed access token for a user.

        Args:
            user_id: User ID to encode in token
            email: User email to encode in token

        Returns:
            Encoded JWT token string
        """
        now = self.clock()
        payload = {
            "sub": user_id,  # Subject (user ID)
            "email": email,
            "iat": int(now.timestamp()),  # Issued at
            "exp": int((now + self.expiration).timestamp()),
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """Decode and validate a session token.

        Raises:
            TokenInvalidError: signature does not verify or structure is malformed
            TokenExpiredError: current time is past the embedded expiry
        """
        try:
            # Expiry is checked below against the injected clock.
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"verify_exp": False, "verify_iat": False, "require": ["sub", "exp", "iat"]},
            )
        except jwt.InvalidTokenError as e:
            raise TokenInvalidError(f"Token rejected: {type(e).__name__}") from e

        user_id = payload.get("sub")
        email = payload.get("email")
        exp = payload.get("exp")
        iat = payload.get("iat")
        if not isinstance(user_id, str) or not isinstance(email, str) or not user_id:
            raise TokenInvalidError("Token rejected: missing identity claims")
        if not isinstance(exp, (int, float)) or not isinstance(iat, (int, float)):
            raise TokenInvalidError("Token rejected: malformed time claims")

        if self.clock().timestamp() > exp:
            raise TokenExpiredError("Token rejected: expired")

        return TokenClaims(
            user_id=user_id,
            email=email,
            issued_at=datetime.fromtimestamp(iat, tz=timezone.utc),
            expires_at=datetime.fromtimestamp(exp, tz=timezone.utc),
        )
