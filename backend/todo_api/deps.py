from __future__ import annotations

from fastapi import Header, Request

from .accounts import AccountService, Principal
from .tasks import TaskStore


def get_accounts(request: Request) -> AccountService:
    return request.app.state.accounts


def get_task_store(request: Request) -> TaskStore:
    return request.app.state.tasks


def get_current_user(request: Request, authorization: str | None = Header(default=None)) -> Principal:
    token = None
    if authorization:
        scheme, _, value = authorization.strip().partition(" ")
        if scheme.lower() == "bearer":
            token = value.strip() or None
    return get_accounts(request).validate_token(token)
