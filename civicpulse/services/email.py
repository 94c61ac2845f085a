from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from typing import Optional

from civicpulse.config import settings

LOGGER = logging.getLogger(__name__)


class EmailSendError(RuntimeError):
    pass


def send_otp_email(to_email: str, code: str) -> None:
    body = _build_otp_body(code, settings.otp_ttl_seconds)
    send_email(to_email, settings.otp_email_subject, body)


def send_email(
    to_email: str, subject: str, body: str, reply_to: Optional[str] = None
) -> None:
    sender = settings.otp_email_sender
    if not settings.smtp_host:
        raise EmailSendError("SMTP is not configured")
    if not sender:
        raise EmailSendError("Email sender is not configured")

    message = build_message(sender, to_email, subject, body, reply_to)
    try:
        with _open_connection() as server:
            if not settings.smtp_use_ssl:
                server.starttls()
            if settings.smtp_username:
                server.login(settings.smtp_username, settings.smtp_password)
            server.send_message(message)
    except smtplib.SMTPException as exc:
        LOGGER.error("SMTP error to=%s: %s", to_email, exc)
        raise EmailSendError("Failed to send email") from exc
    except OSError as exc:
        LOGGER.error("SMTP connection to %s failed: %s", settings.smtp_host, exc)
        raise EmailSendError("Failed to reach mail server") from exc


def build_message(
    sender: str,
    recipient: str,
    subject: str,
    body: str,
    reply_to: Optional[str] = None,
) -> EmailMessage:
    message = EmailMessage()
    message["From"] = sender
    message["To"] = recipient
    message["Subject"] = subject
    if reply_to:
        message["Reply-To"] = reply_to
    message.set_content(body)
    return message


def _open_connection() -> smtplib.SMTP:
    timeout = settings.delivery_timeout_seconds
    if settings.smtp_use_ssl:
        return smtplib.SMTP_SSL(settings.smtp_host, settings.smtp_port, timeout=timeout)
    return smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=timeout)


def _build_otp_body(code: str, ttl_seconds: int) -> str:
    minutes = max(1, ttl_seconds // 60)
    return (
        f"Your CivicPulse OTP code is {code}.\n\n"
        f"It expires in {minutes} minute(s).\n"
        "Use it to reset your password.\n\n"
        "If you did not request this code, you can ignore this email."
    )
