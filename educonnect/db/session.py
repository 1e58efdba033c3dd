from __future__ import annotations

from collections.abc import Generator

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool


def _is_sqlite_memory(url: str) -> bool:
    return url in ("sqlite://", "sqlite+pysqlite://") or ":memory:" in url or "mode=memory" in url


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def make_engine(url: str) -> Engine:
    """
    Build the engine for the relational store.

    SQLite gets `check_same_thread=False`, a single shared connection for
    in-memory URLs, and foreign keys switched on for every connection.
    """

    kwargs: dict = {}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if _is_sqlite_memory(url):
            kwargs["poolclass"] = StaticPool

    engine = create_engine(url, **kwargs)
    if url.startswith("sqlite"):
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, class_=Session)


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Main DB dependency: one session per request, from the factory built in
    `create_app` (no module-level engine).
    """

    session_factory = getattr(request.app.state, "session_factory", None)
    if session_factory is None:
        raise RuntimeError("Session factory not configured. Did app startup run?")

    db = session_factory()
    try:
        yield db
    finally:
        db.close()
