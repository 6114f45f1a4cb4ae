from __future__ import annotations

import logging
from dataclasses import dataclass

import jwt
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .auth import decode_token, hash_password, make_token, verify_password
from .db import Database, utcnow
from .errors import (
    ConflictError,
    InvalidCredentialsError,
    InvalidTokenError,
    MissingTokenError,
    StorageError,
    ValidationError,
    ensure_text,
)
from .models import User

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


@dataclass(frozen=True)
class Principal:
    """Identity carried by a validated token."""

    id: int
    email: str


class AccountService:
    def __init__(self, db: Database, *, jwt_secret: str, jwt_ttl_seconds: int, pbkdf2_iters: int):
        self.db = db
        self.jwt_secret = jwt_secret
        self.jwt_ttl_seconds = jwt_ttl_seconds
        self.pbkdf2_iters = pbkdf2_iters
        # verified against when the email is unknown, so both login failures cost one hash
        self._dummy_hash = hash_password("not-a-real-password", pbkdf2_iters)

    def issue_token(self, user_id: int, email: str) -> str:
        return make_token(user_id, email, secret=self.jwt_secret, ttl_seconds=self.jwt_ttl_seconds)

    @staticmethod
    def _credentials(email: str | None, password: str | None) -> tuple[str, str]:
        email = (email or "").strip()
        if not email or not password:
            raise ValidationError("Email and password are required")
        ensure_text(email, "Email contains invalid characters")
        ensure_text(password, "Password contains invalid characters")
        return email, password

    def register(self, email: str | None, password: str | None) -> tuple[str, Principal]:
        email, password = self._credentials(email, password)
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        try:
            with self.db.session() as s:
                existing = s.execute(select(User.id).where(User.email == email)).first()
                if existing is not None:
                    raise ConflictError("User already exists")
                u = User(email=email, password_hash=hash_password(password, self.pbkdf2_iters), created_at=utcnow())
                s.add(u)
                s.commit()
                user_id = int(u.id)
        except IntegrityError:
            # lost a race with a concurrent signup for the same email
            raise ConflictError("User already exists")
        except SQLAlchemyError as exc:
            raise StorageError("Failed to create user") from exc

        logger.info("account created id=%s", user_id)
        return self.issue_token(user_id, email), Principal(id=user_id, email=email)

    def authenticate(self, email: str | None, password: str | None) -> tuple[str, Principal]:
        email, password = self._credentials(email, password)

        try:
            with self.db.session() as s:
                u = s.execute(select(User).where(User.email == email)).scalars().first()
        except SQLAlchemyError as exc:
            raise StorageError("Database error") from exc

        if u is None:
            verify_password(password, self._dummy_hash)
            logger.info("login failed: unknown account")
            raise InvalidCredentialsError("Invalid credentials")
        if not verify_password(password, u.password_hash):
            logger.info("login failed: bad password for id=%s", u.id)
            raise InvalidCredentialsError("Invalid credentials")

        return self.issue_token(int(u.id), u.email), Principal(id=int(u.id), email=u.email)

    def validate_token(self, token: str | None) -> Principal:
        if not token:
            raise MissingTokenError("Access token required")
        try:
            claims = decode_token(token, secret=self.jwt_secret)
            return Principal(id=int(claims["sub"]), email=str(claims.get("email", "")))
        except (jwt.InvalidTokenError, KeyError, ValueError):
            raise InvalidTokenError("Invalid or expired token")
