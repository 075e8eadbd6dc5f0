"""
Tests for CSV import/export of redirect rules.
"""

from __future__ import annotations

import csv
import io

from seo_redirects.adapters.sqlite.repos import SQLiteRedirectRepo
from seo_redirects.components.redirects import (
    CSV_HEADER,
    export_rows,
    import_csv,
    iter_csv,
    write_csv,
)
from seo_redirects.components.redirects._csv import parse_match_type, parse_status


def read_rows(text: str) -> list[list[str]]:
    return list(csv.reader(io.StringIO(text)))


class TestParsing:
    def test_parse_status(self) -> None:
        assert parse_status("302") == 302
        assert parse_status(" 308 ") == 308
        assert parse_status("") == 301
        assert parse_status("moved") == 301
        assert parse_status("0") == 301

    def test_parse_match_type(self) -> None:
        assert parse_match_type("prefix") == "prefix"
        assert parse_match_type(" REGEX ") == "regex"
        assert parse_match_type("") == "exact"
        assert parse_match_type("wildcard") == "exact"


class TestExport:
    def test_empty_store_writes_header_only(self, repo: SQLiteRedirectRepo) -> None:
        buffer = io.StringIO()

        count = write_csv(repo, buffer)

        assert count == 0
        assert read_rows(buffer.getvalue()) == [list(CSV_HEADER)]

    def test_header_order(self) -> None:
        assert CSV_HEADER == ("source", "target", "status", "match_type")

    def test_rows_newest_first(self, repo: SQLiteRedirectRepo) -> None:
        repo.insert("/a", "/b", 301, "exact")
        repo.insert("/c", "https://example.com/d", 302, "prefix")

        buffer = io.StringIO()
        write_csv(repo, buffer)

        assert read_rows(buffer.getvalue())[1:] == [
            ["/c", "https://example.com/d", "302", "prefix"],
            ["/a", "/b", "301", "exact"],
        ]

    def test_quoting(self, repo: SQLiteRedirectRepo) -> None:
        repo.insert('#^/a,"b"$#', "/t", 301, "regex")

        buffer = io.StringIO()
        write_csv(repo, buffer)

        assert read_rows(buffer.getvalue())[1][0] == '#^/a,"b"$#'

    def test_export_pages_through_store(self, repo: SQLiteRedirectRepo) -> None:
        for i in range(7):
            repo.insert(f"/p{i}", "/t")

        rules = list(export_rows(repo, page_size=3))

        assert len(rules) == 7
        assert [r.source for r in rules] == [f"/p{i}" for i in reversed(range(7))]

    def test_iter_csv_chunks_join_to_full_export(self, repo: SQLiteRedirectRepo) -> None:
        for i in range(5):
            repo.insert(f"/p{i}", "/t")

        chunks = list(iter_csv(repo, page_size=2))
        buffer = io.StringIO()
        write_csv(repo, buffer)

        assert len(chunks) == 3
        assert "".join(chunks) == buffer.getvalue()


class TestImport:
    def test_header_discarded_without_validation(self, repo: SQLiteRedirectRepo) -> None:
        text = "anything,goes,here\n/old,/new,302,exact\n"

        result = import_csv(repo, io.StringIO(text))

        assert result.imported == 1
        assert repo.list_page().total == 1

    def test_rows_missing_source_or_target_skipped(self, repo: SQLiteRedirectRepo) -> None:
        text = (
            "source,target,status,match_type\n"
            "/valid,/new,301,exact\n"
            "  ,/new,301,exact\n"
            "/no-target,   ,301,exact\n"
            "\n"
        )

        result = import_csv(repo, io.StringIO(text))

        assert result.imported == 1
        assert result.skipped == 3
        assert repo.list_page().total == 1

    def test_defaults_applied(self, repo: SQLiteRedirectRepo) -> None:
        text = "source,target,status,match_type\n/a,/b,abc,glob\n/c,/d\n"

        import_csv(repo, io.StringIO(text))

        rules = repo.list_page().rows
        assert [(r.source, r.status, r.match_type) for r in rules] == [
            ("/c", 301, "exact"),
            ("/a", 301, "exact"),
        ]

    def test_values_trimmed(self, repo: SQLiteRedirectRepo) -> None:
        text = "source,target,status,match_type\n  /a  , /b ,308, prefix \n"

        import_csv(repo, io.StringIO(text))

        rule = repo.list_page().rows[0]
        assert (rule.source, rule.target, rule.status, rule.match_type) == (
            "/a",
            "/b",
            308,
            "prefix",
        )

    def test_import_is_additive(self, repo: SQLiteRedirectRepo) -> None:
        text = "source,target,status,match_type\n/a,/b,301,exact\n"

        import_csv(repo, io.StringIO(text))
        import_csv(repo, io.StringIO(text))

        assert repo.list_page().total == 2

    def test_empty_file(self, repo: SQLiteRedirectRepo) -> None:
        result = import_csv(repo, io.StringIO(""))

        assert result.imported == 0
        assert result.skipped == 0


class TestRoundTrip:
    def test_export_then_import_preserves_rules(self, repo: SQLiteRedirectRepo) -> None:
        repo.insert("/old-path?ref=abc", "/new", 302, "exact")
        repo.insert("/legacy/*", "https://example.com/", 308, "prefix")
        repo.insert("#^/docs/(v\\d+)/(.+)$#", "/documentation", 301, "regex")

        buffer = io.StringIO()
        write_csv(repo, buffer)

        repo.bulk_delete(r.id for r in repo.list_page(per_page=10).rows)
        result = import_csv(repo, io.StringIO(buffer.getvalue()))

        assert result.imported == 3
        # Export is newest first, so re-import reverses id order.
        imported = sorted(
            (r.source, r.target, r.status, r.match_type)
            for r in repo.list_page(per_page=10).rows
        )
        assert imported == sorted(
            [
                ("/old-path?ref=abc", "/new", 302, "exact"),
                ("/legacy/*", "https://example.com/", 308, "prefix"),
                ("#^/docs/(v\\d+)/(.+)$#", "/documentation", 301, "regex"),
            ]
        )
