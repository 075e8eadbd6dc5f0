"""
Redirects component input/output models.

RedirectRule is the only persisted entity. Everything else here is a
component input or output envelope.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, TextIO

# --- Constants ---


class MatchType(str, Enum):
    """How a rule's source is compared against a request."""

    EXACT = "exact"
    PREFIX = "prefix"
    REGEX = "regex"


MATCH_TYPES = frozenset(m.value for m in MatchType)
ALLOWED_STATUS_CODES = frozenset({301, 302, 307, 308})
DEFAULT_STATUS = 301
DEFAULT_MATCH_TYPE = MatchType.EXACT.value


# --- Errors ---


@dataclass(frozen=True)
class RedirectValidationError:
    """Redirect validation error."""

    code: str
    message: str
    field: str | None = None


class RedirectStoreUnavailable(Exception):
    """Rule storage could not be reached during a lookup."""


# --- Redirect Model ---


@dataclass(frozen=True)
class RedirectRule:
    """URL redirect rule."""

    id: int
    source: str
    target: str
    status: int = DEFAULT_STATUS
    match_type: str = DEFAULT_MATCH_TYPE
    hits: int = 0
    last_hit: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class RedirectPage:
    """One page of rules plus the total row count."""

    rows: tuple[RedirectRule, ...]
    total: int


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving one request."""

    target: str | None = None
    status: int | None = None
    matched: bool = False
    rule_id: int | None = None


NO_MATCH = Resolution()


@dataclass(frozen=True)
class ImportResult:
    """Counts from a CSV import."""

    imported: int
    skipped: int


# --- Input Models ---


@dataclass(frozen=True)
class CreateRedirectInput:
    """Input for creating a new redirect."""

    source: str
    target: str
    status: Any = DEFAULT_STATUS
    match_type: str = DEFAULT_MATCH_TYPE


@dataclass(frozen=True)
class UpdateRedirectInput:
    """Input for updating an existing redirect."""

    rule_id: int
    updates: dict[str, Any]


@dataclass(frozen=True)
class DeleteRedirectInput:
    """Input for deleting a redirect."""

    rule_id: int


@dataclass(frozen=True)
class BulkDeleteRedirectsInput:
    """Input for deleting several redirects at once."""

    rule_ids: tuple[int, ...]


@dataclass(frozen=True)
class GetRedirectInput:
    """Input for getting a redirect."""

    rule_id: int


@dataclass(frozen=True)
class ListRedirectsInput:
    """Input for listing one page of redirects."""

    page: int = 1
    per_page: int = 20


@dataclass(frozen=True)
class ResolveRedirectInput:
    """Input for resolving a request URI."""

    request_uri: str
    host: str = ""
    is_admin_or_async: bool = False


@dataclass(frozen=True)
class ImportRedirectsInput:
    """Input for importing redirects from CSV text."""

    stream: TextIO


@dataclass(frozen=True)
class ExportRedirectsInput:
    """Input for exporting redirects as CSV text."""

    stream: TextIO


# --- Output Models ---


@dataclass(frozen=True)
class RedirectOutput:
    """Output containing a single redirect."""

    redirect: RedirectRule | None
    errors: list[RedirectValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class RedirectListOutput:
    """Output containing one page of redirects."""

    redirects: tuple[RedirectRule, ...]
    total: int
    page: int
    per_page: int
    errors: list[RedirectValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class RedirectOperationOutput:
    """Output for redirect operations (create, update, delete)."""

    redirect: RedirectRule | None = None
    deleted: int = 0
    errors: list[RedirectValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class ResolveOutput:
    """Output for resolve operation."""

    target: str | None
    status: int | None
    matched: bool
    rule_id: int | None = None
    errors: list[RedirectValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class TransferOutput:
    """Output for import/export operations."""

    count: int
    skipped: int = 0
    errors: list[RedirectValidationError] = field(default_factory=list)
    success: bool = True
