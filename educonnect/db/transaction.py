"""
Scoped transactions and store-failure translation.

    with transaction(db):
        ...several statements...
    # committed here, exactly once; on any exception rolled back exactly once

Handlers build their success response only after the block exits, so a
response is never sent for work that failed to commit.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.orm import Session

from educonnect.errors import StoreUnavailable
from educonnect.settings import get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _is_unavailable(exc: DBAPIError) -> bool:
    return isinstance(exc, OperationalError) or bool(exc.connection_invalidated)


@contextmanager
def translate_store_errors() -> Iterator[None]:
    """Surface connection loss, timeouts and lock waits as StoreUnavailable."""
    try:
        yield
    except DBAPIError as exc:
        if _is_unavailable(exc):
            logger.warning("Store unavailable: %s", type(exc.orig).__name__ if exc.orig else type(exc).__name__)
            raise StoreUnavailable() from exc
        raise


@contextmanager
def transaction(session: Session) -> Iterator[Session]:
    try:
        with translate_store_errors():
            yield session
            session.commit()
    except BaseException:
        session.rollback()
        raise


def run_read(session: Session, read: Callable[[], T], *, retry_delay: float | None = None) -> T:
    """
    Run an idempotent read, retrying it once after a fixed delay if the store
    is unavailable. Never use this for writes.
    """

    if retry_delay is None:
        retry_delay = get_settings().read_retry_delay_seconds

    try:
        with translate_store_errors():
            return read()
    except StoreUnavailable:
        session.rollback()
        logger.info("Retrying read once after %.3fs", retry_delay)
        time.sleep(retry_delay)
        with translate_store_errors():
            return read()
