import logging

from classroom.db import get_session
from classroom.errors import UserNotFound
from classroom.models import User
from sqlmodel import select
from passlib.context import CryptContext

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def create_user(email: str, password: str, first_name: str | None = None, last_name: str | None = None, role: str = "student"):
    email = _normalize_email(email)
    with get_session() as session:
        q = select(User).where(User.email == email)
        existing = session.exec(q).first()
        if existing:
            raise ValueError("User already exists")
        user = User(
            email=email,
            password_hash=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            role=role,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user


def authenticate_user(email: str, password: str):
    with get_session() as session:
        q = select(User).where(User.email == _normalize_email(email))
        user = session.exec(q).first()
        if not user:
            return None
        if verify_password(password, user.password_hash):
            return user
        return None


def get_user_by_id(user_id: int):
    with get_session() as session:
        return session.get(User, user_id)


def get_user_by_email(email: str):
    with get_session() as session:
        return session.exec(select(User).where(User.email == _normalize_email(email))).first()


class LocalIdentityProvider:
    """Identity collaborator backed by the local user table.

    The password-reset flow only needs lookups and a credential update, so
    any provider exposing these three methods can be swapped in.
    """

    def __init__(self, session_factory=get_session):
        self._session_factory = session_factory

    def get_user(self, user_id: int):
        with self._session_factory() as session:
            return session.get(User, user_id)

    def get_user_by_email(self, email: str):
        with self._session_factory() as session:
            return session.exec(select(User).where(User.email == _normalize_email(email))).first()

    def update_credential(self, user_id: int, new_password: str) -> None:
        with self._session_factory() as session:
            user = session.get(User, user_id)
            if not user:
                raise UserNotFound()
            user.password_hash = hash_password(new_password)
            session.add(user)
            session.commit()
        logger.info("Password updated for user %s", user_id)
