"""
Redirects component port definitions.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Any, Protocol

from .models import RedirectPage, RedirectRule


class RuleStorePort(Protocol):
    """
    Persistence for redirect rules.

    Invariants:
    - ids are assigned monotonically and never reused
    - status and match_type are coerced to defaults, never rejected
    - hits only change through record_hit
    """

    def insert(
        self,
        source: str,
        target: str,
        status: Any = 301,
        match_type: str = "exact",
    ) -> int:
        """Persist a new rule and return its id."""
        ...

    def update(self, rule_id: int, fields: dict[str, Any]) -> bool:
        """Apply recognized fields; False if none given or id unknown."""
        ...

    def delete(self, rule_id: int) -> bool:
        """Delete one rule."""
        ...

    def bulk_delete(self, rule_ids: Iterable[int]) -> int:
        """Delete several rules, returning the number removed."""
        ...

    def get(self, rule_id: int) -> RedirectRule | None:
        """Get rule by id."""
        ...

    def list_page(self, page: int = 1, per_page: int = 20) -> RedirectPage:
        """List rules newest first."""
        ...

    def candidates_for(self, request_uri: str) -> list[RedirectRule]:
        """
        Rules that could match the request, in evaluation order.

        Exact rules first, then prefix, then regex; newest first within
        each group. Must never omit a rule that could match.
        """
        ...

    def record_hit(self, rule_id: int, at: datetime) -> None:
        """Atomically increment hits and set last_hit."""
        ...


class HitRecorderPort(Protocol):
    """Receives hit notifications from the resolver."""

    def record(self, rule_id: int) -> None:
        """Record one hit; must not raise."""
        ...


class TimePort(Protocol):
    """Time provider interface."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...
