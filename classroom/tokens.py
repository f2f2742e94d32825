"""Signed, short-lived password-reset tokens.

The token is an HS256 JWT scoped to the ``password-reset`` audience. Expiry
is checked against the caller's clock rather than PyJWT's, so tests and
hosts can inject time.

Each token also carries ``pwh``, an HMAC of the password hash it was issued
against. Once the password changes the fingerprint no longer matches, so a
token authorizes at most one reset without being stored anywhere.
"""

import hashlib
import hmac
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from classroom.config import RESET_TOKEN_SECRET, RESET_TOKEN_TTL_MINUTES

ALGORITHM = "HS256"
AUDIENCE = "password-reset"


@dataclass(frozen=True)
class ResetClaims:
    user_id: int
    issued_at: datetime
    expires_at: datetime
    password_fingerprint: str


def password_fingerprint(password_hash: str, secret: str = RESET_TOKEN_SECRET) -> str:
    return hmac.new(secret.encode(), (password_hash or "").encode(), hashlib.sha256).hexdigest()


def fingerprint_matches(claims: ResetClaims, password_hash: str, secret: str = RESET_TOKEN_SECRET) -> bool:
    return hmac.compare_digest(claims.password_fingerprint, password_fingerprint(password_hash, secret))


def create_reset_token(user_id: int, password_hash: str, now: datetime, secret: str = RESET_TOKEN_SECRET,
                       ttl_minutes: int = RESET_TOKEN_TTL_MINUTES) -> str:
    payload = {
        "sub": str(user_id),
        "aud": AUDIENCE,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=ttl_minutes)).timestamp()),
        "pwh": password_fingerprint(password_hash, secret),
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def decode_reset_token(token: str, now: datetime, secret: str = RESET_TOKEN_SECRET) -> Optional[ResetClaims]:
    """Return the claims of a valid token, or None if it is forged, malformed or expired."""
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[ALGORITHM],
            audience=AUDIENCE,
            options={"verify_exp": False, "verify_iat": False, "require": ["sub", "iat", "exp", "pwh"]},
        )
        user_id = int(payload["sub"])
        issued_at = datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc)
        expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
        fingerprint = str(payload["pwh"])
    except (jwt.PyJWTError, ValueError, TypeError):
        return None

    if now >= expires_at:
        return None
    return ResetClaims(user_id=user_id, issued_at=issued_at, expires_at=expires_at,
                       password_fingerprint=fingerprint)
