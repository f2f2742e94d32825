"""Outgoing email for the password-reset flow.

Sending is best-effort: ``send`` logs failures and returns False instead of
raising, so a mail outage never undoes a state change that already
committed. Without SMTP settings the mailer runs in dev mode and only logs.
"""

import logging
import smtplib
from email.message import EmailMessage

from classroom import config

logger = logging.getLogger(__name__)

PASSWORD_RESET_OTP = "password_reset_otp"
PASSWORD_RESET_CONFIRMATION = "password_reset_confirmation"


def _render_otp(payload: dict) -> tuple[str, str, str]:
    name = payload.get("first_name") or "there"
    code = payload["otp_code"]
    minutes = payload.get("expires_in_minutes", config.OTP_TTL_MINUTES)
    subject = "Your Password Reset OTP Code"
    text = (
        f"Hi {name},\n\n"
        "We received a request to reset your password. Use the code below to proceed:\n\n"
        f"    {code}\n\n"
        f"This code expires in {minutes} minutes. Never share it with anyone.\n"
        "If you did not request a password reset, you can ignore this email.\n"
    )
    html = (
        f"<p>Hi {name},</p>"
        "<p>We received a request to reset your password. Use the code below to proceed:</p>"
        f"<p style=\"font-size:28px;letter-spacing:6px;font-weight:bold\">{code}</p>"
        f"<p>This code expires in <strong>{minutes} minutes</strong>. Never share it with anyone.</p>"
    )
    return subject, text, html


def _render_confirmation(payload: dict) -> tuple[str, str, str]:
    name = payload.get("first_name") or "there"
    subject = "Password Reset Successful"
    text = (
        f"Hi {name},\n\n"
        "Your password has been changed. If you did not do this, contact support immediately.\n"
    )
    html = (
        f"<p>Hi {name},</p>"
        "<p>Your password has been changed. If you did not do this, contact support immediately.</p>"
    )
    return subject, text, html


TEMPLATES = {
    PASSWORD_RESET_OTP: _render_otp,
    PASSWORD_RESET_CONFIRMATION: _render_confirmation,
}


class Mailer:
    def __init__(self, host=None, port=None, user=None, password=None, sender=None, app_name=None):
        self.host = host if host is not None else config.SMTP_HOST
        self.port = port if port is not None else config.SMTP_PORT
        self.user = user if user is not None else config.SMTP_USER
        self.password = password if password is not None else config.SMTP_PASS
        self.sender = sender or config.SMTP_FROM or self.user
        self.app_name = app_name or config.APP_NAME
        if not self.configured:
            logger.warning(
                "SMTP not configured; emails will only be logged. "
                "Set SMTP_HOST, SMTP_PORT, SMTP_USER, SMTP_PASS to enable sending."
            )

    @property
    def configured(self) -> bool:
        return bool(self.host and self.port and self.user and self.password)

    def _connect(self):
        if self.port == 465:
            smtp = smtplib.SMTP_SSL(self.host, self.port, timeout=10)
        else:
            smtp = smtplib.SMTP(self.host, self.port, timeout=10)
            smtp.starttls()
        smtp.login(self.user, self.password)
        return smtp

    def verify(self) -> bool:
        """Open and close one SMTP connection; used by the host at startup."""
        if not self.configured:
            return False
        try:
            with self._connect() as smtp:
                smtp.noop()
        except (smtplib.SMTPException, OSError) as e:
            logger.error("SMTP connection failed: %s", e)
            return False
        logger.info("SMTP connection established")
        return True

    def build_message(self, kind: str, recipient: str, payload: dict) -> EmailMessage:
        subject, text, html = TEMPLATES[kind](payload)
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = f"{self.app_name} <{self.sender}>"
        msg["To"] = recipient
        msg.set_content(text)
        msg.add_alternative(html, subtype="html")
        return msg

    def send(self, kind: str, recipient: str, payload: dict) -> bool:
        if kind not in TEMPLATES:
            raise ValueError(f"Unknown email kind: {kind}")

        if not self.configured:
            logger.warning("[DEV MODE] %s email would be sent to %s", kind, recipient)
            if kind == PASSWORD_RESET_OTP:
                logger.warning("[DEV MODE] OTP code for %s: %s", recipient, payload.get("otp_code"))
            return True

        try:
            msg = self.build_message(kind, recipient, payload)
            with self._connect() as smtp:
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Error sending %s email to %s: %s", kind, recipient, e)
            return False

        logger.info("%s email sent to %s", kind, recipient)
        return True
