import sqlite3

import pytest

from seo_redirects.adapters.sqlite.migrator import DEFAULT_MIGRATIONS_DIR, SQLiteMigrator


@pytest.fixture
def temp_db_path(tmp_path):
    return str(tmp_path / "test_db.sqlite")


def test_migrator_creates_migration_table(temp_db_path):
    SQLiteMigrator(temp_db_path).run_migrations()

    conn = sqlite3.connect(temp_db_path)
    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name='_migrations'"
    )
    assert cursor.fetchone() is not None
    conn.close()


def test_migrator_applies_initial(temp_db_path):
    applied = SQLiteMigrator(temp_db_path).run_migrations()

    assert applied == ["001_create_redirects.sql"]

    conn = sqlite3.connect(temp_db_path)
    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name='redirects'"
    )
    assert cursor.fetchone() is not None

    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='index' AND name='idx_redirects_match'"
    )
    assert cursor.fetchone() is not None
    conn.close()


def test_down_section_not_applied(temp_db_path):
    SQLiteMigrator(temp_db_path).run_migrations()

    conn = sqlite3.connect(temp_db_path)
    conn.execute(
        "INSERT INTO redirects (source, target, status, match_type, created_at, updated_at) "
        "VALUES ('/a', '/b', 301, 'exact', 'now', 'now')"
    )
    conn.commit()
    assert conn.execute("SELECT count(*) FROM redirects").fetchone()[0] == 1
    conn.close()


def test_migrator_is_idempotent(temp_db_path):
    migrator = SQLiteMigrator(temp_db_path)

    migrator.run_migrations()
    assert migrator.run_migrations() == []
    assert migrator.pending() == []

    conn = sqlite3.connect(temp_db_path)
    cursor = conn.execute(
        "SELECT count(*) FROM _migrations WHERE filename='001_create_redirects.sql'"
    )
    assert cursor.fetchone()[0] == 1
    conn.close()


def test_pending_lists_unapplied(temp_db_path):
    assert SQLiteMigrator(temp_db_path).pending() == ["001_create_redirects.sql"]


def test_failed_migration_raises(temp_db_path, tmp_path):
    migrations = tmp_path / "migrations"
    migrations.mkdir()
    (migrations / "001_broken.sql").write_text("CREATE TABLE (;\n")

    with pytest.raises(RuntimeError, match="001_broken.sql"):
        SQLiteMigrator(temp_db_path, str(migrations)).run_migrations()

    assert SQLiteMigrator(temp_db_path, str(migrations)).pending() == ["001_broken.sql"]


def test_default_migrations_dir_ships_with_package():
    assert DEFAULT_MIGRATIONS_DIR.endswith("migrations")
