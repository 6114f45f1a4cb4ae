from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

# Request fields are optional here so that missing values reach the services
# and come back as our own 400 messages.


class AuthIn(BaseModel):
    email: str | None = None
    password: str | None = None


class UserOut(BaseModel):
    id: int
    email: str


class AuthOut(BaseModel):
    message: str
    token: str
    user: UserOut


class TaskCreate(BaseModel):
    title: str | None = None
    description: str | None = None


class TaskUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    status: str | None = None


class TaskOut(BaseModel):
    id: int
    title: str
    description: str
    status: str
    user_id: int
    created_at: datetime
    updated_at: datetime


class MessageOut(BaseModel):
    message: str
