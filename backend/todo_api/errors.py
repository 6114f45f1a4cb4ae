from __future__ import annotations


class AppError(Exception):
    """Base for errors that map onto an HTTP response of the form {"error": message}."""

    status_code = 500
    default_message = "Server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid request"


class ConflictError(AppError):
    status_code = 400
    default_message = "User already exists"


class InvalidCredentialsError(AppError):
    # same message for unknown email and wrong password
    status_code = 400
    default_message = "Invalid credentials"


class MissingTokenError(AppError):
    status_code = 401
    default_message = "Access token required"


class InvalidTokenError(AppError):
    status_code = 403
    default_message = "Invalid or expired token"


class NotFoundError(AppError):
    # also used for rows owned by someone else
    status_code = 404
    default_message = "Task not found or unauthorized"


class StorageError(AppError):
    status_code = 500
    default_message = "Database error"


def ensure_text(value: str, message: str) -> str:
    """Reject strings that cannot be stored or hashed (lone surrogates survive JSON decoding)."""
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        raise ValidationError(message)
    return value
