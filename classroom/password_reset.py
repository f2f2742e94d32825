"""One-time-code password reset.

Per user the flow is: no code -> issued -> verified (exchanged for a reset
token) -> consumed by a password change. Issued codes expire after
``OTP_TTL_MINUTES``; a new request invalidates every earlier unused code.
"""

import logging
import secrets
from datetime import timedelta

from sqlalchemy import update
from sqlmodel import select, func

from classroom import config
from classroom.db import get_session
from classroom.errors import (
    ClassroomError,
    InvalidOrExpiredOtp,
    InvalidOrExpiredToken,
    RateLimited,
    UpstreamUnavailable,
    UserNotFound,
)
from classroom.mailer import PASSWORD_RESET_CONFIRMATION, PASSWORD_RESET_OTP
from classroom.models import PasswordResetOtp, now_utc
from classroom.tokens import create_reset_token, decode_reset_token, fingerprint_matches
from classroom.validators import validate_otp_code

logger = logging.getLogger(__name__)

REQUEST_MESSAGE = "If an account with that email exists, a password reset code has been sent."
VERIFY_MESSAGE = "OTP verified successfully. Use the reset token to set a new password."
RESET_MESSAGE = "Your password has been reset successfully. You can now log in with your new password."


def generate_otp_code() -> str:
    return str(100000 + secrets.randbelow(900000))


class PasswordResetService:
    def __init__(self, mailer, identity, clock=now_utc, secret=None, session_factory=get_session):
        self.mailer = mailer
        self.identity = identity
        self.clock = clock
        self.secret = secret or config.RESET_TOKEN_SECRET
        self._session_factory = session_factory

    def _invalidate_unused(self, session, user_id: int) -> int:
        rows = session.exec(
            select(PasswordResetOtp).where(
                PasswordResetOtp.user_id == user_id,
                PasswordResetOtp.is_used == False,  # noqa: E712
            )
        ).all()
        for row in rows:
            row.is_used = True
            session.add(row)
        return len(rows)

    def _notify(self, kind: str, email: str, payload: dict) -> None:
        # the state change has already committed; a mail failure must not undo it
        try:
            delivered = self.mailer.send(kind, email, payload)
        except Exception:
            logger.exception("Mailer raised while sending %s email", kind)
            return
        if not delivered:
            logger.warning("%s email to %s was not delivered", kind, email)

    def request_otp(self, email: str) -> dict:
        """Issue a code for ``email``.

        The response is the same whether or not the account exists. Raises
        RateLimited after OTP_RATE_LIMIT codes within the rate window.
        """
        email = (email or "").strip().lower()
        user = self.identity.get_user_by_email(email)
        if not user:
            logger.info("Password reset requested for unknown email")
            return {"message": REQUEST_MESSAGE}

        now = self.clock()
        window_start = now - timedelta(minutes=config.OTP_RATE_WINDOW_MINUTES)
        with self._session_factory() as session:
            # count-then-insert is not atomic; two concurrent requests may
            # both pass, so the limit is a soft one
            recent = session.exec(
                select(func.count(PasswordResetOtp.id)).where(
                    PasswordResetOtp.email == email,
                    PasswordResetOtp.created_at >= window_start,
                )
            ).one()
            if recent >= config.OTP_RATE_LIMIT:
                logger.warning("OTP rate limit hit for user %s", user.id)
                raise RateLimited(
                    "Too many OTP requests. Please try again later.",
                    retry_after=config.OTP_RATE_WINDOW_MINUTES * 60,
                )

            self._invalidate_unused(session, user.id)
            code = generate_otp_code()
            session.add(PasswordResetOtp(
                user_id=user.id,
                email=email,
                otp_code=code,
                created_at=now,
                expires_at=now + timedelta(minutes=config.OTP_TTL_MINUTES),
            ))
            session.commit()

        self._notify(PASSWORD_RESET_OTP, email, {
            "otp_code": code,
            "first_name": user.first_name,
            "expires_in_minutes": config.OTP_TTL_MINUTES,
        })
        return {"message": REQUEST_MESSAGE}

    def _find_valid_otp(self, session, email: str, otp_code: str, now):
        return session.exec(
            select(PasswordResetOtp).where(
                PasswordResetOtp.email == email,
                PasswordResetOtp.otp_code == otp_code,
                PasswordResetOtp.is_used == False,  # noqa: E712
                PasswordResetOtp.expires_at > now,
            )
        ).first()

    def _claim_otp(self, session, otp_id: int) -> bool:
        """Mark a code used; False if another request already claimed it."""
        result = session.execute(
            update(PasswordResetOtp)
            .where(PasswordResetOtp.id == otp_id, PasswordResetOtp.is_used == False)  # noqa: E712
            .values(is_used=True)
        )
        return result.rowcount == 1

    def verify_otp(self, email: str, otp_code: str) -> dict:
        email = (email or "").strip().lower()
        otp_code = validate_otp_code(otp_code)
        now = self.clock()

        with self._session_factory() as session:
            otp = self._find_valid_otp(session, email, otp_code, now)
            if otp is None:
                raise InvalidOrExpiredOtp()
            user_id = otp.user_id
            if not self._claim_otp(session, otp.id):
                session.rollback()
                logger.warning("OTP %s was claimed by a concurrent request", otp.id)
                raise InvalidOrExpiredOtp()
            session.commit()

        user = self.identity.get_user(user_id)
        if not user:
            raise UserNotFound()

        token = create_reset_token(user.id, user.password_hash, now, secret=self.secret)
        return {
            "reset_token": token,
            "expires_in": config.RESET_TOKEN_TTL_MINUTES * 60,
            "message": VERIFY_MESSAGE,
        }

    def reset_password(self, reset_token: str, new_password: str) -> dict:
        """Change the password of the token's user.

        Password complexity is checked by the caller (see validators). A
        token stops working once the password it was issued against changes.
        """
        claims = decode_reset_token(reset_token or "", self.clock(), secret=self.secret)
        if claims is None:
            raise InvalidOrExpiredToken()

        user = self.identity.get_user(claims.user_id)
        if not user:
            raise UserNotFound()
        if not fingerprint_matches(claims, user.password_hash, secret=self.secret):
            logger.warning("Reset token for user %s was already used", user.id)
            raise InvalidOrExpiredToken()

        try:
            self.identity.update_credential(user.id, new_password)
        except ClassroomError:
            raise
        except Exception as e:
            logger.exception("Identity service failed to update the password of user %s", user.id)
            raise UpstreamUnavailable("Could not update the password. Please try again later.") from e

        with self._session_factory() as session:
            cleared = self._invalidate_unused(session, user.id)
            session.commit()
        if cleared:
            logger.info("Invalidated %d leftover OTP(s) for user %s", cleared, user.id)

        self._notify(PASSWORD_RESET_CONFIRMATION, user.email, {"first_name": user.first_name})
        return {"message": RESET_MESSAGE}
