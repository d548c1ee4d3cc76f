"""Pytest configuration for test isolation.

The ``db`` client keeps one shared engine per process and refuses to rebind
it to a different URL. Tests that bootstrap their own SQLite file would trip
that guard, so the engine is reset around every test. ``DATABASE_URL`` and
the package's env-driven settings are cleared so a developer's ``.env`` or
shell cannot leak into assertions.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from db.client import reset_engine

from tests.helpers.db import bootstrap_sqlite_db


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for var in ("DATABASE_URL", "PROPERTY_LEDGER_STRICT_DATES", "PROPERTY_LEDGER_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    reset_engine()
    yield
    reset_engine()


@pytest.fixture()
def db_url(tmp_path: Path) -> str:
    """URL of a fresh, schema-initialized SQLite database for this test."""

    return bootstrap_sqlite_db(tmp_path / "ledger.sqlite3")
