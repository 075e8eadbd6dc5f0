"""
SQLite redirect rule store.

Implements RuleStorePort. One connection per operation; SQLite serializes
concurrent writers (busy timeout), so hit increments never lose updates.

Candidate lookup is index-driven for exact and prefix rules:
- exact: match_key equals the normalized request
- prefix: match_key equals one of the request's character prefixes
  (including the empty prefix), probed through the (match_type, match_key)
  index
- regex: every regex rule
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from seo_redirects.components.redirects import (
    RedirectPage,
    RedirectRule,
    RedirectStoreUnavailable,
    TimePort,
    match_key_for,
    match_type_or_default,
    normalize_uri,
    status_or_default,
)

# SQLite's default host-parameter limit is 999 on older builds.
BULK_DELETE_CHUNK = 500

CANDIDATES_SQL = """
    WITH RECURSIVE prefixes(n) AS (
        SELECT 0
        UNION ALL
        SELECT n + 1 FROM prefixes WHERE n < length(:uri)
    )
    SELECT *, 0 AS priority FROM redirects
    WHERE match_type = 'exact' AND match_key = :uri
    UNION ALL
    SELECT *, 1 AS priority FROM redirects
    WHERE match_type = 'prefix'
      AND match_key IN (SELECT substr(:uri, 1, n) FROM prefixes)
    UNION ALL
    SELECT *, 2 AS priority FROM redirects
    WHERE match_type = 'regex'
    ORDER BY priority ASC, id DESC
"""


# Helper to convert sqlite rows to dicts
def dict_factory(cursor: sqlite3.Cursor, row: Any) -> dict[str, Any]:
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def parse_dt(s: str | None) -> datetime | None:
    """Parse ISO datetime string."""
    return datetime.fromisoformat(s) if s else None


class SQLiteRedirectRepo:
    def __init__(
        self,
        db_path: str,
        time_port: TimePort | None = None,
        timeout: float = 5.0,
    ):
        self.db_path = db_path
        self._time_port = time_port
        self._timeout = timeout

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=self._timeout)
        conn.row_factory = dict_factory
        return conn

    def _now(self) -> str:
        if self._time_port is not None:
            return self._time_port.now_utc().isoformat()
        from seo_redirects.adapters.clock import SystemClock

        return SystemClock().now_utc().isoformat()

    def insert(
        self,
        source: str,
        target: str,
        status: Any = 301,
        match_type: str = "exact",
    ) -> int:
        kind = match_type_or_default(match_type)
        now = self._now()
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                """
                INSERT INTO redirects (
                    source, target, status, match_type, match_key,
                    hits, last_hit, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, 0, NULL, ?, ?)
                """,
                (
                    str(source or ""),
                    str(target or ""),
                    status_or_default(status),
                    kind,
                    match_key_for(str(source or ""), kind),
                    now,
                    now,
                ),
            )
            conn.commit()
            return int(cursor.lastrowid or 0)
        finally:
            conn.close()

    def update(self, rule_id: int, fields: dict[str, Any]) -> bool:
        changes: dict[str, Any] = {}
        if fields.get("source") is not None:
            changes["source"] = str(fields["source"])
        if fields.get("target") is not None:
            changes["target"] = str(fields["target"])
        if fields.get("status") is not None:
            changes["status"] = status_or_default(fields["status"])
        if fields.get("match_type") is not None:
            changes["match_type"] = match_type_or_default(fields["match_type"])
        if not changes:
            return False

        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT source, match_type FROM redirects WHERE id = ?", (int(rule_id),)
            ).fetchone()
            if not row:
                return False

            source = changes.get("source", row["source"])
            kind = changes.get("match_type", row["match_type"])
            changes["match_key"] = match_key_for(source, kind)
            changes["updated_at"] = self._now()

            assignments = ", ".join(f"{col} = ?" for col in changes)
            conn.execute(
                f"UPDATE redirects SET {assignments} WHERE id = ?",
                (*changes.values(), int(rule_id)),
            )
            conn.commit()
            return True
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def delete(self, rule_id: int) -> bool:
        conn = self._get_conn()
        try:
            cursor = conn.execute("DELETE FROM redirects WHERE id = ?", (int(rule_id),))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    def bulk_delete(self, rule_ids: Iterable[int]) -> int:
        ids = sorted({int(i) for i in rule_ids})
        if not ids:
            return 0

        conn = self._get_conn()
        try:
            deleted = 0
            for start in range(0, len(ids), BULK_DELETE_CHUNK):
                chunk = ids[start : start + BULK_DELETE_CHUNK]
                placeholders = ", ".join("?" for _ in chunk)
                cursor = conn.execute(
                    f"DELETE FROM redirects WHERE id IN ({placeholders})", chunk
                )
                deleted += cursor.rowcount
            conn.commit()
            return deleted
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def get(self, rule_id: int) -> RedirectRule | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM redirects WHERE id = ?", (int(rule_id),)
            ).fetchone()
            return self._map_row(row) if row else None
        finally:
            conn.close()

    def list_page(self, page: int = 1, per_page: int = 20) -> RedirectPage:
        per_page = max(1, int(per_page))
        offset = (max(1, int(page)) - 1) * per_page
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM redirects ORDER BY id DESC LIMIT ? OFFSET ?",
                (per_page, offset),
            ).fetchall()
            total = conn.execute("SELECT COUNT(*) AS total FROM redirects").fetchone()["total"]
            return RedirectPage(rows=tuple(self._map_row(r) for r in rows), total=int(total))
        finally:
            conn.close()

    def candidates_for(self, request_uri: str) -> list[RedirectRule]:
        uri = normalize_uri(request_uri)
        try:
            conn = self._get_conn()
            try:
                rows = conn.execute(CANDIDATES_SQL, {"uri": uri}).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise RedirectStoreUnavailable(f"Redirect lookup failed: {e}") from e
        return [self._map_row(r) for r in rows]

    def record_hit(self, rule_id: int, at: datetime) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                "UPDATE redirects SET hits = hits + 1, last_hit = ? WHERE id = ?",
                (at.isoformat(), int(rule_id)),
            )
            conn.commit()
        finally:
            conn.close()

    def _map_row(self, row: dict[str, Any]) -> RedirectRule:
        return RedirectRule(
            id=int(row["id"]),
            source=row["source"],
            target=row["target"],
            status=int(row["status"]),
            match_type=row["match_type"],
            hits=int(row["hits"]),
            last_hit=parse_dt(row["last_hit"]),
            created_at=parse_dt(row["created_at"]),
            updated_at=parse_dt(row["updated_at"]),
        )
