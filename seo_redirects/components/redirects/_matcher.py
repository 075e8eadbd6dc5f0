"""
Rule matching (pure, no I/O).

Decides whether a single rule matches a request path+query.

Key behaviors:
- exact/prefix compare normalized forms: path lower-cased, trailing slash
  stripped (root stays "/"), query kept verbatim
- prefix strips the source's trailing "*" after normalization
- regex runs against the raw request; patterns without a delimiter pair
  are wrapped in "#...#"
- unknown match types never match
"""

from __future__ import annotations

import re
from functools import lru_cache
from urllib.parse import urlsplit

from .models import RedirectRule

PATTERN_DELIMITERS = frozenset("/#~!")


def _split_uri(uri: str) -> tuple[str, str]:
    """Split a URI into (path, query), ignoring scheme, host and fragment."""
    try:
        parts = urlsplit(uri)
        return parts.path, parts.query
    except ValueError:
        # Malformed netloc (e.g. a stray "["); fall back to plain splitting.
        rest = uri.split("#", 1)[0]
        path, _, query = rest.partition("?")
        return path, query


def path_and_query(uri: str) -> str:
    """Reduce a URI to path+query (no scheme or host); missing path is "/"."""
    path, query = _split_uri(uri)
    return (path or "/") + (f"?{query}" if query else "")


def normalize_uri(uri: str) -> str:
    """Normalize a path+query for exact/prefix comparison."""
    path, query = _split_uri(uri)
    path = path.lower().rstrip("/") or "/"
    return path + (f"?{query}" if query else "")


def _type_value(match_type: object) -> str:
    return str(getattr(match_type, "value", match_type))


def match_key_for(source: str, match_type: object) -> str | None:
    """
    Indexed lookup key for a rule.

    The normalized source for exact rules, the normalized source minus any
    trailing "*" for prefix rules, None for everything else.
    """
    kind = _type_value(match_type)
    if kind == "exact":
        return normalize_uri(source)
    if kind == "prefix":
        return normalize_uri(source).rstrip("*")
    return None


def ensure_delimiters(pattern: str) -> str | None:
    """Return the pattern wrapped in delimiters, or None if it is empty."""
    pattern = pattern.strip()
    if not pattern:
        return None

    first, last = pattern[0], pattern[-1]
    if first == last and first in PATTERN_DELIMITERS:
        # A lone delimiter has no closing pair.
        return pattern if len(pattern) > 1 else None

    return "#" + pattern.replace("#", "\\#") + "#"


@lru_cache(maxsize=512)
def compile_pattern(pattern: str) -> re.Pattern[str] | None:
    """Compile a stored regex source; None if empty or invalid."""
    delimited = ensure_delimiters(pattern)
    if delimited is None:
        return None
    try:
        return re.compile(delimited[1:-1])
    except (re.error, OverflowError, RecursionError):
        return None


def matches(rule: RedirectRule, request_uri: str, host: str = "") -> bool:
    """
    Check whether a rule matches a request.

    Args:
        rule: Candidate rule (only source and match_type are read).
        request_uri: Request path+query, e.g. "/foo?bar=baz".
        host: Request host. Accepted for parity with the resolver; rules
            are host-agnostic.

    Returns:
        True if the rule matches.
    """
    source = rule.source or ""
    kind = _type_value(rule.match_type)

    if kind == "exact":
        return normalize_uri(request_uri) == match_key_for(source, kind)

    if kind == "prefix":
        key = match_key_for(source, kind)
        return key is not None and normalize_uri(request_uri).startswith(key)

    if kind == "regex":
        compiled = compile_pattern(source)
        return compiled is not None and compiled.search(request_uri) is not None

    return False
