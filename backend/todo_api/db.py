from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .models import Base

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def get_engine(url: str) -> Engine:
    kwargs: dict = {"pool_pre_ping": True}
    u = make_url(url)
    if u.get_backend_name() == "sqlite":
        # handlers run in a threadpool, so connections cross threads
        kwargs["connect_args"] = {"check_same_thread": False}
        if u.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


class Database:
    """Owns the engine and session factory for the lifetime of one app."""

    def __init__(self, url: str):
        self.url = url
        self.engine = get_engine(url)
        self._sessions = sessionmaker(bind=self.engine, expire_on_commit=False)

    def setup(self) -> None:
        Base.metadata.create_all(bind=self.engine)
        logger.info("database ready (%s)", self.engine.url.render_as_string(hide_password=True))

    def teardown(self) -> None:
        self.engine.dispose()
        logger.info("database connections closed")

    def session(self) -> Session:
        return self._sessions()
