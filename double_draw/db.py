"""SQLAlchemy engine + session management.

Uses a session-per-request pattern: one request is one ledger transaction,
committed before the response is sent.
"""

from __future__ import annotations

import logging

from flask import Flask, Response, g
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from double_draw.errors import CommitFailedError
from double_draw.models.base import Base
from double_draw.utils.responses import fail

logger = logging.getLogger(__name__)

# Seconds a SQLite writer waits for the database lock.
SQLITE_LOCK_TIMEOUT = 30


def _serialize_sqlite_writers(engine: Engine) -> None:
    """Begin every SQLite transaction holding the write lock.

    pysqlite defers BEGIN until the first write, which lets two writers read
    the same state before either of them locks it.
    """

    @event.listens_for(engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_app_engine(database_url: str) -> Engine:
    url = make_url(database_url)

    if url.get_backend_name() != "sqlite":
        return create_engine(database_url, pool_pre_ping=True, future=True)

    # An in-memory SQLite database only lives as long as its connection.
    if url.database in (None, "", ":memory:"):
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            future=True,
        )
    else:
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False, "timeout": SQLITE_LOCK_TIMEOUT},
            future=True,
        )

    _serialize_sqlite_writers(engine)
    return engine


def init_db(app: Flask) -> None:
    """Initialize database engine and per-request sessions."""

    engine = create_app_engine(str(app.config["DATABASE_URL"]))
    session_factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    # Import models so they register with Base.metadata
    from double_draw import models  # noqa: F401

    Base.metadata.create_all(bind=engine)

    app.extensions["engine"] = engine
    app.extensions["session_factory"] = session_factory

    @app.before_request
    def _open_session() -> None:
        g.db = session_factory()  # type: ignore[attr-defined]
        g.db_failed = False  # type: ignore[attr-defined]

    @app.after_request
    def _commit_session(response: Response) -> Response:
        session: Session | None = getattr(g, "db", None)
        if session is None or getattr(g, "db_failed", False) or response.status_code >= 400:
            return response

        try:
            session.commit()
        except SQLAlchemyError:
            logger.exception("Commit failed")
            session.rollback()
            g.db_failed = True  # type: ignore[attr-defined]
            error = CommitFailedError()
            failed, status = fail(error.code, error.message, error.status_code)
            failed.status_code = status
            return failed

        return response

    @app.teardown_request
    def _close_session(exc: BaseException | None) -> None:
        session: Session | None = getattr(g, "db", None)
        if session is None:
            return

        # Anything not committed by _commit_session is discarded.
        try:
            session.rollback()
        finally:
            session.close()


def mark_session_failed() -> None:
    """Keep the current request's session from committing.

    Errors turned into responses by error handlers never reach the commit hook
    as an exception, so they flag the session instead.
    """

    if getattr(g, "db", None) is not None:
        g.db_failed = True  # type: ignore[attr-defined]


def get_session() -> Session:
    """Get the current request's SQLAlchemy session."""

    session: Session | None = getattr(g, "db", None)
    if session is None:
        raise RuntimeError("Database session not initialized")
    return session
