"""
core/db.py -- Engine construction and transient-failure retry for the stores.

Both repositories (office/store.py and auth/store.py) build their engine here so
SQLite connection quirks live in one place:
  - check_same_thread=False, because FastAPI runs sync handlers in a thread pool
    and a pooled connection may be used from a thread other than its creator.
  - WAL journal mode, set per connection because SQLite PRAGMAs are not
    inherited by new pooled connections.

with_retries() re-runs a store operation when the driver reports a transient
failure (OperationalError: database locked, connection dropped). Each store
operation opens its own connection, so a retry always starts from a clean
transaction. IntegrityError and other errors are never retried.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from core.config import get_settings

logger = logging.getLogger("connectedoffice.db")

F = TypeVar("F", bound=Callable)


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers are not blocked during writes."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def create_store_engine(db_url: str) -> Engine:
    """Return an Engine for db_url with SQLite-specific connection settings applied."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args, pool_pre_ping=True)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine


def with_retries(fn: F) -> F:
    """Retry the wrapped store method up to Settings.db_max_retries times on OperationalError.

    Backoff grows exponentially from Settings.db_retry_delay_seconds. The final
    failure is re-raised unchanged so the catch-all handler reports it as a 500.
    Settings are read per call so a changed retry policy applies without
    re-decorating the stores.
    """

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        settings = get_settings()
        retrying = Retrying(
            stop=stop_after_attempt(settings.db_max_retries + 1),
            wait=wait_exponential(multiplier=settings.db_retry_delay_seconds),
            retry=retry_if_exception_type(OperationalError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        return retrying(fn, *args, **kwargs)

    return wrapper  # type: ignore[return-value]
