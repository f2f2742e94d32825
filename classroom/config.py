import os
from dotenv import load_dotenv

load_dotenv()

APP_NAME = os.getenv("APP_NAME", "Classroom")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./app.db")
UPLOAD_DIR = os.getenv("UPLOAD_DIR", "./uploads")

# Password reset
RESET_TOKEN_SECRET = os.getenv("RESET_TOKEN_SECRET", "dev-secret-change-me")
RESET_TOKEN_TTL_MINUTES = int(os.getenv("RESET_TOKEN_TTL_MINUTES", "15"))
OTP_TTL_MINUTES = int(os.getenv("OTP_TTL_MINUTES", "10"))
OTP_RATE_WINDOW_MINUTES = int(os.getenv("OTP_RATE_WINDOW_MINUTES", "15"))
OTP_RATE_LIMIT = int(os.getenv("OTP_RATE_LIMIT", "3"))

# SMTP; emails are only logged when any of these is missing
SMTP_HOST = os.getenv("SMTP_HOST")
SMTP_PORT = int(os.getenv("SMTP_PORT", "0")) or None
SMTP_USER = os.getenv("SMTP_USER")
SMTP_PASS = os.getenv("SMTP_PASS")
SMTP_FROM = os.getenv("SMTP_FROM") or SMTP_USER

ENUMERATION_DISTINCT_MATCHES = os.getenv("ENUMERATION_DISTINCT_MATCHES", "false").lower() in ("1", "true", "yes")
