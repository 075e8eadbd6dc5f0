"""
CSV import/export for redirect rules.

Format: header row "source,target,status,match_type", then one rule per
line with standard CSV quoting. Ids are not exported.

Key behaviors:
- Export pages through the store, never loading the whole table
- Import discards the header, skips rows missing source or target,
  defaults status to 301 and match_type to "exact"
- Import is additive; duplicates are not detected
"""

from __future__ import annotations

import csv
import io
import logging
from collections.abc import Iterable, Iterator
from typing import TextIO

from .models import (
    DEFAULT_MATCH_TYPE,
    DEFAULT_STATUS,
    MATCH_TYPES,
    ImportResult,
    RedirectRule,
)
from .ports import RuleStorePort

logger = logging.getLogger(__name__)

CSV_HEADER = ("source", "target", "status", "match_type")
EXPORT_PAGE_SIZE = 2000


def export_rows(
    store: RuleStorePort,
    page_size: int = EXPORT_PAGE_SIZE,
) -> Iterator[RedirectRule]:
    """Yield every rule, newest first, one store page at a time."""
    page = 1
    seen = 0
    while True:
        chunk = store.list_page(page, page_size)
        if not chunk.rows:
            break
        yield from chunk.rows
        seen += len(chunk.rows)
        if seen >= chunk.total:
            break
        page += 1


def _row_values(rule: RedirectRule) -> list[str | int]:
    return [rule.source, rule.target, rule.status, rule.match_type]


def write_csv(
    store: RuleStorePort,
    stream: TextIO,
    page_size: int = EXPORT_PAGE_SIZE,
) -> int:
    """Write all rules to a text stream. Returns the number of rows written."""
    writer = csv.writer(stream)
    writer.writerow(CSV_HEADER)

    count = 0
    for rule in export_rows(store, page_size):
        writer.writerow(_row_values(rule))
        count += 1

    logger.info("Exported %d redirects", count)
    return count


def iter_csv(
    store: RuleStorePort,
    page_size: int = EXPORT_PAGE_SIZE,
) -> Iterator[str]:
    """Yield CSV text in chunks (header first), suitable for streaming."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_HEADER)

    for i, rule in enumerate(export_rows(store, page_size), start=1):
        writer.writerow(_row_values(rule))
        if i % page_size == 0:
            yield buffer.getvalue()
            buffer.seek(0)
            buffer.truncate(0)

    tail = buffer.getvalue()
    if tail:
        yield tail


def parse_status(value: str) -> int:
    """Status column to int; 301 when missing, non-numeric or zero."""
    try:
        status = int(value.strip())
    except ValueError:
        return DEFAULT_STATUS
    return status or DEFAULT_STATUS


def parse_match_type(value: str) -> str:
    """Match type column; "exact" unless one of the known types."""
    value = value.strip().lower()
    return value if value in MATCH_TYPES else DEFAULT_MATCH_TYPE


def import_rows(store: RuleStorePort, rows: Iterable[list[str]]) -> ImportResult:
    """Insert parsed CSV data rows (header already removed)."""
    imported = 0
    skipped = 0

    for row in rows:
        source, target, status, match_type = (list(row) + ["", "", "", ""])[:4]
        source = source.strip()
        target = target.strip()

        if not source or not target:
            skipped += 1
            continue

        store.insert(
            source=source,
            target=target,
            status=parse_status(status),
            match_type=parse_match_type(match_type),
        )
        imported += 1

    return ImportResult(imported=imported, skipped=skipped)


def import_csv(store: RuleStorePort, stream: TextIO) -> ImportResult:
    """
    Import rules from CSV text.

    The first row is treated as a header and discarded without validation.
    """
    reader = csv.reader(stream)
    next(reader, None)

    result = import_rows(store, reader)
    logger.info(
        "Imported %d redirects (%d rows skipped)",
        result.imported,
        result.skipped,
    )
    return result
