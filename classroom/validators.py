"""Input checks run before the grading and password-reset flows."""

import re

from classroom.errors import ValidationError

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
OTP_RE = re.compile(r"^\d{6}$")
SPECIAL_CHARS = "@$!%*?&"
PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]")


def validate_email(email: str) -> str:
    email = (email or "").strip().lower()
    if not EMAIL_RE.match(email):
        raise ValidationError("Please provide a valid email address")
    return email


def validate_otp_code(code: str) -> str:
    code = (code or "").strip()
    if not OTP_RE.match(code):
        raise ValidationError("OTP code must be exactly 6 digits")
    return code


def validate_new_password(password: str) -> str:
    if not password or len(password) < 8:
        raise ValidationError("Password must be at least 8 characters long")
    if not PASSWORD_RE.match(password):
        raise ValidationError(
            "Password must contain at least one uppercase letter, one lowercase letter, "
            f"one number, and one special character ({SPECIAL_CHARS})"
        )
    return password
