# tests/test_accounts.py

from __future__ import annotations

import pytest
from sqlalchemy import func, select

from todo_api import accounts as accounts_module
from todo_api.accounts import AccountService
from todo_api.auth import make_token
from todo_api.db import Database, utcnow
from todo_api.errors import ConflictError, InvalidCredentialsError, InvalidTokenError, MissingTokenError, ValidationError
from todo_api.models import User


def _user_count(db: Database) -> int:
    with db.session() as s:
        return int(s.execute(select(func.count(User.id))).scalar_one())


def test_register_then_login_issues_valid_tokens(accounts: AccountService) -> None:
    token, user = accounts.register("a@x.com", "secret1")
    assert user.id > 0
    assert user.email == "a@x.com"
    assert accounts.validate_token(token) == user

    token2, user2 = accounts.authenticate("a@x.com", "secret1")
    assert user2 == user
    assert accounts.validate_token(token2).id == user.id


def test_password_is_stored_hashed(accounts: AccountService, db: Database) -> None:
    accounts.register("a@x.com", "secret1")
    with db.session() as s:
        u = s.execute(select(User)).scalars().one()
    assert u.password_hash != "secret1"
    assert u.password_hash.startswith("pbkdf2_sha256$")
    assert u.created_at is not None


@pytest.mark.parametrize(
    "email,password,message",
    [
        (None, "secret1", "Email and password are required"),
        ("a@x.com", None, "Email and password are required"),
        ("   ", "secret1", "Email and password are required"),
        ("a@x.com", "12345", "Password must be at least 6 characters"),
    ],
)
def test_register_validation(accounts: AccountService, db: Database, email, password, message) -> None:
    with pytest.raises(ValidationError) as ei:
        accounts.register(email, password)
    assert ei.value.message == message
    assert _user_count(db) == 0


def test_duplicate_email_conflicts(accounts: AccountService, db: Database) -> None:
    accounts.register("a@x.com", "secret1")
    with pytest.raises(ConflictError):
        accounts.register("a@x.com", "another1")
    assert _user_count(db) == 1


def test_email_is_case_sensitive(accounts: AccountService, db: Database) -> None:
    accounts.register("a@x.com", "secret1")
    accounts.register("A@x.com", "secret1")
    assert _user_count(db) == 2


def test_login_failures_are_indistinguishable(accounts: AccountService) -> None:
    accounts.register("a@x.com", "secret1")

    with pytest.raises(InvalidCredentialsError) as wrong_pw:
        accounts.authenticate("a@x.com", "wrong-password")
    with pytest.raises(InvalidCredentialsError) as unknown:
        accounts.authenticate("nobody@x.com", "secret1")

    assert wrong_pw.value.message == unknown.value.message == "Invalid credentials"


def test_login_requires_both_fields(accounts: AccountService) -> None:
    with pytest.raises(ValidationError):
        accounts.authenticate("a@x.com", "")


def test_validate_token_errors(accounts: AccountService) -> None:
    with pytest.raises(MissingTokenError):
        accounts.validate_token(None)
    with pytest.raises(InvalidTokenError):
        accounts.validate_token("not.a.jwt")

    forged = make_token(1, "a@x.com", secret="someone-else", ttl_seconds=60)
    with pytest.raises(InvalidTokenError):
        accounts.validate_token(forged)

    expired = make_token(1, "a@x.com", secret=accounts.jwt_secret, ttl_seconds=-1)
    with pytest.raises(InvalidTokenError):
        accounts.validate_token(expired)


def test_concurrent_duplicate_signup_conflicts(
    accounts: AccountService, db: Database, monkeypatch: pytest.MonkeyPatch
) -> None:
    # another request inserts the same email after our existence check has passed
    real_hash = accounts_module.hash_password

    def hash_after_competitor(pw: str, iters: int) -> str:
        with db.session() as s:
            s.add(User(email="a@x.com", password_hash=real_hash("other-pw", iters), created_at=utcnow()))
            s.commit()
        return real_hash(pw, iters)

    monkeypatch.setattr(accounts_module, "hash_password", hash_after_competitor)

    with pytest.raises(ConflictError) as ei:
        accounts.register("a@x.com", "secret1")
    assert ei.value.message == "User already exists"
    assert _user_count(db) == 1


def test_unencodable_password_is_a_validation_error(accounts: AccountService, db: Database) -> None:
    with pytest.raises(ValidationError) as ei:
        accounts.register("s@x.com", "abcdef\ud800")
    assert ei.value.message == "Password contains invalid characters"
    assert _user_count(db) == 0

    with pytest.raises(ValidationError):
        accounts.authenticate("s@x.com", "abcdef\ud800")
