from datetime import UTC, datetime

import pytest

from seo_redirects.adapters.sqlite.migrator import SQLiteMigrator
from seo_redirects.adapters.sqlite.repos import SQLiteRedirectRepo


class FixedClock:
    """Deterministic clock for repository timestamps."""

    def __init__(self, now: datetime | None = None) -> None:
        self.current = now or datetime(2025, 1, 1, 12, 0, tzinfo=UTC)

    def now_utc(self) -> datetime:
        return self.current


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def db_path(tmp_path) -> str:
    """
    Temporary SQLite database with the real migrations applied.
    """
    path = str(tmp_path / "redirects.db")
    SQLiteMigrator(path).run_migrations()
    return path


@pytest.fixture
def repo(db_path: str, clock: FixedClock) -> SQLiteRedirectRepo:
    return SQLiteRedirectRepo(db_path, time_port=clock)
