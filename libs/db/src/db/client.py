"""Engine and session handling for the ledger database.

One engine is shared per process and bound to the first URL it sees (an
explicit ``database_url`` argument or ``DATABASE_URL``). Callers work inside
:func:`session_scope`, which commits on success and rolls back on any error::

    from db.client import session_scope

    with session_scope(database_url=url) as session:
        session.add(row)
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

DATABASE_URL_ENV_VAR = "DATABASE_URL"


@dataclass(slots=True)
class _Bound:
    url: str
    engine: Engine
    sessions: sessionmaker[Session]


_bound: _Bound | None = None


def resolve_database_url(override: str | None = None) -> str:
    url = override or os.getenv(DATABASE_URL_ENV_VAR)
    if not url:
        raise RuntimeError(
            f"{DATABASE_URL_ENV_VAR} is not set; pass --database-url or add it to .env"
        )
    return url


def _install_sqlite_hooks(engine: Engine) -> None:
    # Emit BEGIN ourselves so nested transactions map onto SAVEPOINTs, and
    # switch foreign keys on for every pooled connection.
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, _record):  # pragma: no cover - driver bridge
        dbapi_conn.isolation_level = None
        dbapi_conn.execute("PRAGMA foreign_keys = ON")

    @event.listens_for(engine, "begin")
    def _on_begin(conn):  # pragma: no cover - driver bridge
        conn.exec_driver_sql("BEGIN")


def get_engine(*, database_url: str | None = None) -> Engine:
    """Return the process-wide engine, creating it on first use.

    Raises ``RuntimeError`` when no URL is configured or when a different URL
    is requested after the engine was bound.
    """

    global _bound
    url = resolve_database_url(database_url)
    if _bound is not None:
        if url != _bound.url:
            raise RuntimeError(
                f"engine already bound to a different {DATABASE_URL_ENV_VAR}; "
                "call reset_engine() first"
            )
        return _bound.engine

    engine = create_engine(url, pool_pre_ping=True)
    if engine.dialect.name == "sqlite":
        _install_sqlite_hooks(engine)
    _bound = _Bound(url, engine, sessionmaker(bind=engine, expire_on_commit=False))
    return engine


def reset_engine() -> None:
    global _bound
    if _bound is not None:
        _bound.engine.dispose()
    _bound = None


def get_session(*, database_url: str | None = None) -> Session:
    get_engine(database_url=database_url)
    assert _bound is not None
    return _bound.sessions()


@contextmanager
def session_scope(*, database_url: str | None = None) -> Iterator[Session]:
    """Yield a session whose work is committed as one unit."""

    session = get_session(database_url=database_url)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


__all__ = [
    "get_engine",
    "get_session",
    "reset_engine",
    "resolve_database_url",
    "session_scope",
]
