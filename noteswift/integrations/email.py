"""Email delivery for NoteSwift verification codes.

Senders are plain objects constructed from configuration and handed to the OTP
issuer, so tests can substitute their own. Every sender raises
`EmailDeliveryError` when a message could not be handed off; there is no
silent fallback to another transport.
"""

import os
import logging
import smtplib
from email.message import EmailMessage
from typing import Optional

import requests
from dotenv import load_dotenv

from noteswift.errors import EmailDeliveryError

load_dotenv()

logger = logging.getLogger(__name__)

BREVO_SEND_URL = "https://api.brevo.com/v3/smtp/email"

OTP_SUBJECT = "Your NoteSwift Verification Code"


def render_otp_html(otp_code: str, expire_minutes: int) -> str:
    return f"""
      <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
        <h2 style="color: #3b82f6;">Verify Your Email</h2>
        <p>Please use the verification code below to continue signing in to NoteSwift:</p>
        <div style="background-color: #f3f4f6; padding: 20px; text-align: center; margin: 20px 0;">
          <h1 style="font-size: 32px; letter-spacing: 8px; margin: 0; color: #1f2937;">{otp_code}</h1>
        </div>
        <p>This code will expire in {expire_minutes} minutes.</p>
        <p>If you didn't request this verification, please ignore this email.</p>
        <p>Best regards,<br>The NoteSwift Team</p>
      </div>
    """


def render_otp_text(otp_code: str, expire_minutes: int) -> str:
    return (
        f"Your NoteSwift verification code is: {otp_code}\n\n"
        f"This code will expire in {expire_minutes} minutes.\n\n"
        "If you didn't request this verification, please ignore this email.\n"
    )


class EmailSender:
    """Interface for delivering verification codes."""

    def send_otp(self, to_email: str, otp_code: str, expire_minutes: int) -> None:
        raise NotImplementedError


class SMTPEmailSender(EmailSender):
    """Send through an SMTP relay (STARTTLS on 587 by default, implicit TLS if `use_ssl`)."""

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        from_address: Optional[str] = None,
        use_ssl: Optional[bool] = None,
        timeout: Optional[float] = None,
    ):
        self.host = host or os.getenv("SMTP_HOST", "smtp.gmail.com")
        self.port = port or int(os.getenv("SMTP_PORT", "587"))
        self.username = username if username is not None else os.getenv("SMTP_USER")
        self.password = password if password is not None else os.getenv("SMTP_PASS")
        self.from_address = from_address or os.getenv("MAIL_FROM") or self.username
        if use_ssl is None:
            use_ssl = os.getenv("SMTP_USE_SSL", "False").lower() == "true"
        self.use_ssl = use_ssl
        self.timeout = timeout or float(os.getenv("SMTP_TIMEOUT_SECONDS", "10"))

    def _build_message(self, to_email: str, otp_code: str, expire_minutes: int) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = OTP_SUBJECT
        message["From"] = self.from_address
        message["To"] = to_email
        message.set_content(render_otp_text(otp_code, expire_minutes))
        message.add_alternative(render_otp_html(otp_code, expire_minutes), subtype="html")
        return message

    def _connect(self) -> smtplib.SMTP:
        if self.use_ssl:
            return smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        client = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        client.starttls()
        return client

    def send_otp(self, to_email: str, otp_code: str, expire_minutes: int) -> None:
        message = self._build_message(to_email, otp_code, expire_minutes)
        try:
            with self._connect() as client:
                if self.username:
                    client.login(self.username, self.password or "")
                client.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Error sending OTP email to {to_email}: {type(e).__name__}: {str(e)}")
            raise EmailDeliveryError("Failed to send verification email") from e
        logger.info(f"OTP email sent to {to_email}")


class BrevoEmailSender(EmailSender):
    """Send through the Brevo transactional email HTTP API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        from_address: Optional[str] = None,
        from_name: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.api_key = api_key or os.getenv("BREVO_API_KEY", "")
        self.from_address = from_address or os.getenv("MAIL_FROM", "noreply@example.com")
        self.from_name = from_name or os.getenv("EMAIL_FROM_NAME", "NoteSwift")
        self.timeout = timeout or float(os.getenv("SMTP_TIMEOUT_SECONDS", "10"))
        if not self.api_key:
            raise ValueError("BREVO_API_KEY must be set to use the brevo email backend")

    def send_otp(self, to_email: str, otp_code: str, expire_minutes: int) -> None:
        headers = {
            "api-key": self.api_key,
            "Content-Type": "application/json",
        }
        payload = {
            "sender": {"name": self.from_name, "email": self.from_address},
            "to": [{"email": to_email}],
            "subject": OTP_SUBJECT,
            "htmlContent": render_otp_html(otp_code, expire_minutes),
            "textContent": render_otp_text(otp_code, expire_minutes),
        }
        try:
            response = requests.post(BREVO_SEND_URL, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Error sending OTP email to {to_email}: {type(e).__name__}: {str(e)}")
            raise EmailDeliveryError("Failed to send verification email") from e

        if response.status_code != 201:
            logger.error(f"Brevo API rejected OTP email to {to_email}: {response.status_code} {response.text[:200]}")
            raise EmailDeliveryError("Failed to send verification email")

        message_id = response.json().get("messageId", "unknown")
        logger.info(f"OTP email sent to {to_email}, message_id={message_id}")


class ConsoleEmailSender(EmailSender):
    """Development sender: writes the code to the log instead of emailing it."""

    def send_otp(self, to_email: str, otp_code: str, expire_minutes: int) -> None:
        logger.warning(f"[DEV MODE] OTP for {to_email}: {otp_code} (expires in {expire_minutes} minutes)")


def build_email_sender(backend: Optional[str] = None) -> EmailSender:
    """Construct the sender selected by `EMAIL_BACKEND` (smtp, brevo or console)."""
    backend = (backend or os.getenv("EMAIL_BACKEND", "smtp")).strip().lower()
    if backend == "smtp":
        return SMTPEmailSender()
    if backend == "brevo":
        return BrevoEmailSender()
    if backend == "console":
        return ConsoleEmailSender()
    raise ValueError(f"Unknown EMAIL_BACKEND: {backend!r}")
