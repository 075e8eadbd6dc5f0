"""
Redirect resolution and management.

RedirectResolver runs on every public request: it asks the store for
candidate rules, returns the first one that matches, guards against
self-redirects and records the hit best-effort.

RedirectService is the admin write path: strict validation in front of a
store that otherwise coerces bad values to defaults.

Key behaviors:
- Precedence is exact > prefix > regex, newest rule first within a type
- A relative target equal to the request is never followed (loop guard);
  targets with a host are not checked
- Store failures on the request path mean "no redirect" (fail-open)
- Hit tracking never delays or alters the redirect
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any, TextIO
from urllib.parse import urlsplit

from ._csv import EXPORT_PAGE_SIZE, import_csv, iter_csv, write_csv
from ._matcher import compile_pattern, matches, normalize_uri, path_and_query
from .models import (
    ALLOWED_STATUS_CODES,
    DEFAULT_STATUS,
    MATCH_TYPES,
    NO_MATCH,
    ImportResult,
    MatchType,
    RedirectPage,
    RedirectRule,
    RedirectValidationError,
    Resolution,
)
from .ports import HitRecorderPort, RuleStorePort

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("source", "target", "status", "match_type")

# --- Configuration ---

# Crawler files plus the app's own health and API-docs endpoints.
DEFAULT_RESERVED_PATHS = (
    "/robots.txt",
    "/sitemap.xml",
    "/health",
    "/docs",
    "/docs/oauth2-redirect",
    "/redoc",
    "/openapi.json",
)


@dataclass(frozen=True)
class RedirectConfig:
    """Redirect configuration from rules."""

    enabled: bool = True
    default_status: int = DEFAULT_STATUS

    # Host-supplied exclusions
    reserved_paths: tuple[str, ...] = DEFAULT_RESERVED_PATHS
    skip_prefixes: tuple[str, ...] = ("/api/",)

    # Hit tracking
    track_hits: bool = True
    async_hits: bool = True
    hit_workers: int = 2

    # Admin/transfer
    export_page_size: int = EXPORT_PAGE_SIZE
    list_per_page: int = 20


DEFAULT_CONFIG = RedirectConfig()


# --- Helpers ---


def has_host(url: str) -> bool:
    """Check if a URL carries a host (absolute or protocol-relative)."""
    try:
        return bool(urlsplit(url).netloc)
    except ValueError:
        return False


def is_same_destination(request_uri: str, target: str) -> bool:
    """
    Check whether following target would land on the same request.

    Only relative targets are compared; a target with a host is never
    considered a loop.
    """
    if has_host(target):
        return False
    return normalize_uri(request_uri) == normalize_uri(target)


def coerce_status(value: Any) -> int | None:
    """Parse a status code; None if not an integer."""
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def status_or_default(value: Any) -> int:
    """Status code if allowed, otherwise 301."""
    code = coerce_status(value)
    return code if code in ALLOWED_STATUS_CODES else DEFAULT_STATUS


def match_type_or_default(value: Any) -> str:
    """Match type if known, otherwise "exact"."""
    kind = str(getattr(value, "value", value))
    return kind if kind in MATCH_TYPES else MatchType.EXACT.value


# --- Validation Functions ---


def validate_source(source: str | None) -> list[RedirectValidationError]:
    """Validate rule source."""
    if not (source or "").strip():
        return [
            RedirectValidationError(
                code="source_required",
                message="Source is required",
                field="source",
            )
        ]
    return []


def validate_target(target: str | None) -> list[RedirectValidationError]:
    """Validate rule target."""
    if not (target or "").strip():
        return [
            RedirectValidationError(
                code="target_required",
                message="Target URL is required",
                field="target",
            )
        ]
    return []


def validate_status(status: Any) -> list[RedirectValidationError]:
    """Validate HTTP status code (301, 302, 307, 308)."""
    code = coerce_status(status)
    if code is None or code not in ALLOWED_STATUS_CODES:
        allowed = ", ".join(str(c) for c in sorted(ALLOWED_STATUS_CODES))
        return [
            RedirectValidationError(
                code="invalid_status",
                message=f"Status must be one of {allowed}",
                field="status",
            )
        ]
    return []


def validate_match_type(match_type: Any) -> list[RedirectValidationError]:
    """Validate match type."""
    if str(getattr(match_type, "value", match_type)) not in MATCH_TYPES:
        return [
            RedirectValidationError(
                code="invalid_match_type",
                message="Match type must be exact, prefix or regex",
                field="match_type",
            )
        ]
    return []


def validate_pattern(source: str, match_type: Any) -> list[RedirectValidationError]:
    """Validate that a regex source compiles."""
    if str(getattr(match_type, "value", match_type)) != MatchType.REGEX.value:
        return []
    if compile_pattern(source) is None:
        return [
            RedirectValidationError(
                code="invalid_pattern",
                message=f"Pattern '{source}' is not a valid regular expression",
                field="source",
            )
        ]
    return []


# --- Resolver ---


class RedirectResolver:
    """
    Resolves inbound requests to redirect directives.

    Called once per public request by the host's dispatcher.
    """

    def __init__(
        self,
        store: RuleStorePort,
        hit_recorder: HitRecorderPort | None = None,
        config: RedirectConfig | None = None,
    ) -> None:
        self._store = store
        self._hit_recorder = hit_recorder
        self._config = config or DEFAULT_CONFIG

    @property
    def config(self) -> RedirectConfig:
        return self._config

    def should_skip(self, path: str) -> bool:
        """Check reserved paths that are never redirected."""
        return path in self._config.reserved_paths

    def resolve(
        self,
        request_uri: str,
        host: str = "",
        is_admin_or_async: bool = False,
    ) -> Resolution:
        """
        Resolve a request to a redirect.

        Args:
            request_uri: Raw request URI ("/path?query", or absolute).
            host: Request host.
            is_admin_or_async: Host signal to skip resolution entirely.

        Returns:
            Resolution; matched is False when the page should be served
            normally.
        """
        if not self._config.enabled or is_admin_or_async or not request_uri:
            return NO_MATCH

        path_query = path_and_query(request_uri)
        if self.should_skip(path_query.split("?", 1)[0]):
            return NO_MATCH

        rule = self.find_rule(path_query, host.lower())
        if rule is None:
            return NO_MATCH

        if is_same_destination(path_query, rule.target):
            logger.debug("Redirect %s skipped: target equals request", rule.id)
            return NO_MATCH

        self._track(rule.id)

        return Resolution(
            target=rule.target,
            status=rule.status,
            matched=True,
            rule_id=rule.id,
        )

    def find_rule(self, path_query: str, host: str = "") -> RedirectRule | None:
        """First matching candidate, or None (also on store failure).

        A rule that raises while matching is logged and skipped.
        """
        try:
            candidates = self._store.candidates_for(path_query)
        except Exception as e:
            logger.warning("Redirect lookup failed for %s: %s", path_query, e)
            return None

        for rule in candidates:
            try:
                if matches(rule, path_query, host):
                    return rule
            except Exception:
                logger.exception("Redirect %s could not be evaluated; skipping", rule.id)
        return None

    def _track(self, rule_id: int) -> None:
        if self._hit_recorder is None or not self._config.track_hits:
            return
        try:
            self._hit_recorder.record(rule_id)
        except Exception:
            logger.exception("Hit recorder raised for redirect %s", rule_id)


# --- Redirect Service ---


class RedirectService:
    """
    Redirect admin service.

    Validates strictly before writing; the store itself only coerces.
    """

    def __init__(
        self,
        store: RuleStorePort,
        config: RedirectConfig | None = None,
    ) -> None:
        """Initialize service."""
        self._store = store
        self._config = config or DEFAULT_CONFIG

    def get(self, rule_id: int) -> RedirectRule | None:
        """Get redirect by ID."""
        return self._store.get(rule_id)

    def list_page(self, page: int = 1, per_page: int | None = None) -> RedirectPage:
        """List one page of redirects, newest first."""
        return self._store.list_page(max(1, page), per_page or self._config.list_per_page)

    def create(
        self,
        source: str,
        target: str,
        status: Any = None,
        match_type: Any = MatchType.EXACT.value,
    ) -> tuple[RedirectRule | None, list[RedirectValidationError]]:
        """
        Create a new redirect.

        Returns:
            Tuple of (redirect, errors). Redirect is None if validation fails.
        """
        if status is None:
            status = self._config.default_status

        errors: list[RedirectValidationError] = []
        errors.extend(validate_source(source))
        errors.extend(validate_target(target))
        errors.extend(validate_status(status))
        errors.extend(validate_match_type(match_type))

        if not errors:
            errors.extend(validate_pattern(source.strip(), match_type))

        if errors:
            return None, errors

        kind = str(getattr(match_type, "value", match_type))
        rule_id = self._store.insert(
            source=source.strip(),
            target=target.strip(),
            status=coerce_status(status),
            match_type=kind,
        )
        logger.info("Created redirect %s (%s %s -> %s)", rule_id, kind, source, target)
        return self._store.get(rule_id), []

    def update(
        self,
        rule_id: int,
        updates: dict[str, Any],
    ) -> tuple[RedirectRule | None, list[RedirectValidationError]]:
        """
        Update an existing redirect.

        Only source, target, status and match_type are recognized; None
        values are ignored.
        """
        existing = self._store.get(rule_id)
        if existing is None:
            return None, [
                RedirectValidationError(
                    code="not_found",
                    message=f"Redirect {rule_id} not found",
                )
            ]

        fields = {k: updates[k] for k in UPDATABLE_FIELDS if updates.get(k) is not None}
        if not fields:
            return existing, [
                RedirectValidationError(
                    code="no_updates",
                    message="No recognized fields to update",
                )
            ]

        errors: list[RedirectValidationError] = []
        if "source" in fields:
            errors.extend(validate_source(fields["source"]))
            fields["source"] = fields["source"].strip()
        if "target" in fields:
            errors.extend(validate_target(fields["target"]))
            fields["target"] = fields["target"].strip()
        if "status" in fields:
            errors.extend(validate_status(fields["status"]))
        if "match_type" in fields:
            errors.extend(validate_match_type(fields["match_type"]))

        if not errors:
            errors.extend(
                validate_pattern(
                    fields.get("source", existing.source),
                    fields.get("match_type", existing.match_type),
                )
            )

        if errors:
            return existing, errors

        if "status" in fields:
            fields["status"] = coerce_status(fields["status"])
        if "match_type" in fields:
            fields["match_type"] = str(getattr(fields["match_type"], "value", fields["match_type"]))

        self._store.update(rule_id, fields)
        return self._store.get(rule_id), []

    def delete(self, rule_id: int) -> bool:
        """Delete a redirect."""
        deleted = self._store.delete(rule_id)
        if deleted:
            logger.info("Deleted redirect %s", rule_id)
        return deleted

    def bulk_delete(self, rule_ids: Iterable[int]) -> int:
        """Delete several redirects. Returns the number removed."""
        count = self._store.bulk_delete(rule_ids)
        logger.info("Bulk-deleted %d redirects", count)
        return count

    def import_csv(self, stream: TextIO) -> ImportResult:
        """Import redirects from CSV text (additive)."""
        return import_csv(self._store, stream)

    def export_csv(self, stream: TextIO) -> int:
        """Write all redirects to a CSV stream."""
        return write_csv(self._store, stream, self._config.export_page_size)

    def iter_export(self) -> Iterator[str]:
        """CSV export as text chunks."""
        return iter_csv(self._store, self._config.export_page_size)


# --- Factories ---


def create_redirect_service(
    store: RuleStorePort,
    config: RedirectConfig | None = None,
) -> RedirectService:
    """Create a RedirectService."""
    return RedirectService(store=store, config=config)


def create_resolver(
    store: RuleStorePort,
    hit_recorder: HitRecorderPort | None = None,
    config: RedirectConfig | None = None,
) -> RedirectResolver:
    """Create a RedirectResolver."""
    return RedirectResolver(store=store, hit_recorder=hit_recorder, config=config)
