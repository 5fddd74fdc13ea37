"""Pytest configuration for test isolation.

Every test gets its own file-backed SQLite database under ``tmp_path``. The
process-wide engine cache in ``tallybook_db.client`` is keyed by URL, so each
test talks to a fresh database; engines are disposed at teardown so file
handles do not leak between tests.

``DATABASE_URL`` is removed from the environment so nothing falls back to a
developer's real ledger by accident.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from tallybook_db.client import dispose_engines

from tests.helpers.db import bootstrap_sqlite_db


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep tests hermetic with respect to ``.env``-style configuration."""

    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("TALLYBOOK_LOG_LEVEL", raising=False)


@pytest.fixture
def db_url(tmp_path: Path) -> Iterator[str]:
    """URL of an initialized, empty ledger database for this test."""

    url = bootstrap_sqlite_db(tmp_path / "ledger.db")
    yield url
    dispose_engines()


@pytest.fixture
def data_dir() -> Path:
    return Path(__file__).parent / "data"
