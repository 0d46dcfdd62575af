"""
Email one-time passcodes.

Codes are six digits, live for OTP_EXPIRE_MINUTES and can be verified once.
Resending expires every outstanding code for the address first.
"""
import logging
import secrets
import smtplib
from datetime import datetime, timedelta
from email.message import EmailMessage
from typing import Dict, Any, Optional

from sqlalchemy.orm import Session

from spendwise.config import settings
from spendwise.database.models import OtpVerification

logger = logging.getLogger(__name__)

OTP_SUBJECT = "Your SpendWise Verification Code"


class OtpDeliveryError(Exception):
    """The passcode could not be delivered."""


def generate_code() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"


def render_email(code: str, expire_minutes: int) -> str:
    return (
        f"Your SpendWise verification code is {code}.\n\n"
        f"The code expires in {expire_minutes} minutes. "
        "If you did not request it, you can ignore this email.\n"
    )


class MailSender:
    """Sends plain-text mail over SMTP using the configured account."""

    def __init__(self, host: str, port: int, username: Optional[str], password: Optional[str],
                 sender: Optional[str], use_tls: bool = True):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender
        self.use_tls = use_tls

    def send(self, recipient: str, subject: str, body: str):
        message = EmailMessage()
        message["From"] = self.sender or ""
        message["To"] = recipient
        message["Subject"] = subject
        message.set_content(body)

        try:
            with smtplib.SMTP(self.host, self.port, timeout=30) as smtp:
                if self.use_tls:
                    smtp.starttls()
                if self.username and self.password:
                    smtp.login(self.username, self.password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Failed to send mail to %s: %s", recipient, exc)
            raise OtpDeliveryError(str(exc)) from exc


def get_mail_sender() -> MailSender:
    """FastAPI dependency building the SMTP sender from settings."""
    return MailSender(
        host=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        username=settings.SMTP_USER,
        password=settings.SMTP_PASSWORD,
        sender=settings.mail_sender,
        use_tls=settings.SMTP_USE_TLS,
    )


class OtpService:
    def __init__(self, session: Session, mailer: MailSender, expire_minutes: int = None):
        self.session = session
        self.mailer = mailer
        self.expire_minutes = expire_minutes or settings.OTP_EXPIRE_MINUTES

    def issue(self, email: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Store a fresh code for the address and mail it."""
        now = now or datetime.utcnow()
        code = generate_code()
        record = OtpVerification(
            id=secrets.token_hex(16),
            email=email.lower(),
            otp_code=code,
            expires_at=now + timedelta(minutes=self.expire_minutes),
            verified=False,
            created_at=now,
        )
        self.session.add(record)
        self.session.flush()

        self.mailer.send(email, OTP_SUBJECT, render_email(code, self.expire_minutes))
        logger.info("Issued OTP for %s", email)
        return {"email": record.email, "expires_at": record.expires_at}

    def expire_outstanding(self, email: str, now: Optional[datetime] = None) -> int:
        now = now or datetime.utcnow()
        count = (
            self.session.query(OtpVerification)
            .filter(
                OtpVerification.email == email.lower(),
                OtpVerification.verified.is_(False),
                OtpVerification.expires_at > now,
            )
            .update({"expires_at": now}, synchronize_session=False)
        )
        self.session.flush()
        return count

    def resend(self, email: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or datetime.utcnow()
        self.expire_outstanding(email, now)
        return self.issue(email, now)

    def verify(self, email: str, code: str, now: Optional[datetime] = None) -> bool:
        """Mark the newest matching unexpired code as verified. False when none matches."""
        now = now or datetime.utcnow()
        record = (
            self.session.query(OtpVerification)
            .filter(
                OtpVerification.email == email.lower(),
                OtpVerification.otp_code == code,
                OtpVerification.verified.is_(False),
                OtpVerification.expires_at > now,
            )
            .order_by(OtpVerification.created_at.desc())
            .first()
        )
        if record is None:
            return False
        record.verified = True
        self.session.flush()
        return True
