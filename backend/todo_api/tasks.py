"""Owner-scoped task storage.

Every statement filters on the owner inside SQL, so a task that belongs to
another account looks exactly like one that does not exist.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError

from .db import Database, utcnow
from .errors import NotFoundError, StorageError, ValidationError, ensure_text
from .models import TASK_STATUSES, Task

logger = logging.getLogger(__name__)

# largest id an INTEGER primary key can hold
MAX_TASK_ID = 2**63 - 1


def _clean_title(title: str | None) -> str:
    if not title or not title.strip():
        raise ValidationError("Title is required")
    return ensure_text(title, "Title contains invalid characters")


def _clean_description(description: str | None) -> str:
    return ensure_text(description or "", "Description contains invalid characters")


def _check_id(task_id: int) -> None:
    # ids outside the column range cannot exist
    if not 1 <= task_id <= MAX_TASK_ID:
        raise NotFoundError("Task not found or unauthorized")


def _clean_status(status: str | None) -> str:
    if status is None or status == "":
        return "pending"
    if status not in TASK_STATUSES:
        raise ValidationError("Status must be one of: " + ", ".join(TASK_STATUSES))
    return status


class TaskStore:
    def __init__(self, db: Database, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock

    def list(self, owner_id: int) -> list[Task]:
        try:
            with self.db.session() as s:
                q = select(Task).where(Task.user_id == owner_id).order_by(Task.created_at.desc(), Task.id.desc())
                return list(s.execute(q).scalars().all())
        except SQLAlchemyError as exc:
            logger.exception("listing tasks failed")
            raise StorageError("Failed to fetch tasks") from exc

    def create(self, owner_id: int, title: str | None, description: str | None = None) -> Task:
        title = _clean_title(title)
        description = _clean_description(description)
        now = self.clock()
        try:
            with self.db.session() as s:
                t = Task(
                    title=title,
                    description=description,
                    status="pending",
                    user_id=owner_id,
                    created_at=now,
                    updated_at=now,
                )
                s.add(t)
                s.commit()
                s.refresh(t)
                return t
        except SQLAlchemyError as exc:
            logger.exception("creating task failed")
            raise StorageError("Failed to create task") from exc

    def update(
        self,
        owner_id: int,
        task_id: int,
        title: str | None,
        description: str | None = None,
        status: str | None = None,
    ) -> Task:
        """Replace title/description/status; omitted fields fall back to their defaults."""
        title = _clean_title(title)
        description = _clean_description(description)
        status = _clean_status(status)
        _check_id(task_id)
        try:
            with self.db.session() as s:
                res = s.execute(
                    update(Task)
                    .where(Task.id == task_id, Task.user_id == owner_id)
                    .values(title=title, description=description, status=status, updated_at=self.clock())
                    .execution_options(synchronize_session=False)
                )
                if res.rowcount == 0:
                    s.rollback()
                    raise NotFoundError("Task not found or unauthorized")
                s.commit()
                return s.execute(select(Task).where(Task.id == task_id, Task.user_id == owner_id)).scalars().one()
        except SQLAlchemyError as exc:
            logger.exception("updating task %s failed", task_id)
            raise StorageError("Failed to update task") from exc

    def delete(self, owner_id: int, task_id: int) -> None:
        _check_id(task_id)
        try:
            with self.db.session() as s:
                res = s.execute(
                    delete(Task)
                    .where(Task.id == task_id, Task.user_id == owner_id)
                    .execution_options(synchronize_session=False)
                )
                if res.rowcount == 0:
                    s.rollback()
                    raise NotFoundError("Task not found or unauthorized")
                s.commit()
        except SQLAlchemyError as exc:
            logger.exception("deleting task %s failed", task_id)
            raise StorageError("Failed to delete task") from exc
