# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Password-reset link delivery.
SMTP when configured, an optional webhook, and a log line otherwise (dev mode).
Failures are logged but never raised, so the caller's response is the same
whether or not the address exists.
"""

import smtplib
from email.message import EmailMessage

import httpx

from coldcall.core.config import settings
from coldcall.core.logging import get_logger

logger = get_logger(__name__)

SUBJECT = "Password Reset Request"


def _body(reset_url: str, ttl_minutes: int) -> str:
    return (
        "Password Reset Request\n\n"
        "You requested a password reset. Use this link to reset your password:\n\n"
        f"{reset_url}\n\n"
        f"This link will expire in {ttl_minutes} minutes.\n\n"
        "If you didn't request this, please ignore this email."
    )


class ResetMailer:
    """Delivers reset links over every configured channel."""

    @property
    def dev_mode(self) -> bool:
        return not settings.SMTP_CONFIGURED and not settings.RESET_WEBHOOK_URL

    def send(self, email: str, reset_url: str) -> str:
        """Return the delivery status: ``sent``, ``logged`` or ``failed``."""
        if self.dev_mode:
            logger.info("[DEV MODE] Password reset for %s: %s", email, reset_url)
            return "logged"

        status = "sent"
        if settings.SMTP_CONFIGURED and not self._send_smtp(email, reset_url):
            status = "failed"
        if settings.RESET_WEBHOOK_URL and not self._send_webhook(email, reset_url):
            status = "failed"
        return status

    def _send_smtp(self, email: str, reset_url: str) -> bool:
        msg = EmailMessage()
        msg["Subject"] = SUBJECT
        msg["From"] = settings.SMTP_FROM or settings.SMTP_USER
        msg["To"] = email
        msg.set_content(_body(reset_url, settings.RESET_TOKEN_TTL_MINUTES))
        try:
            if settings.SMTP_PORT == 465:
                with smtplib.SMTP_SSL(settings.SMTP_HOST, settings.SMTP_PORT,
                                      timeout=settings.NOTIFICATION_TIMEOUT) as smtp:
                    smtp.login(settings.SMTP_USER, settings.SMTP_PASS)
                    smtp.send_message(msg)
            else:
                with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT,
                                  timeout=settings.NOTIFICATION_TIMEOUT) as smtp:
                    smtp.starttls()
                    smtp.login(settings.SMTP_USER, settings.SMTP_PASS)
                    smtp.send_message(msg)
            logger.info("Password reset email sent to %s", email)
            return True
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Failed to send password reset email to %s: %s", email, exc)
            return False

    def _send_webhook(self, email: str, reset_url: str) -> bool:
        try:
            with httpx.Client(timeout=settings.NOTIFICATION_TIMEOUT) as client:
                resp = client.post(settings.RESET_WEBHOOK_URL, json={
                    "event": "password_reset",
                    "recipient": email,
                    "reset_url": reset_url,
                })
            if resp.status_code < 300:
                logger.info("Reset webhook delivered for %s (status=%s)", email, resp.status_code)
                return True
            logger.warning("Reset webhook returned %s for %s", resp.status_code, email)
            return False
        except httpx.HTTPError as exc:
            logger.error("Reset webhook delivery failed: %s", exc)
            return False
