"""
Public Redirects (request-path integration).

Runs the resolver once per inbound request, before routing.

Key behaviors:
- Only GET/HEAD requests are considered
- Requests under configured skip prefixes (admin/API) are never redirected
- A match becomes a RedirectResponse with the rule's status code
- No match, or any resolver trouble, falls through to the app
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response
from starlette.types import ASGIApp

from seo_redirects.components.redirects import RedirectResolver, Resolution

logger = logging.getLogger(__name__)

REDIRECTABLE_METHODS = frozenset({"GET", "HEAD"})


def request_uri(request: Request) -> str:
    """Path and query as sent by the client (undecoded where available)."""
    raw_path = request.scope.get("raw_path")
    path = raw_path.decode("latin-1") if raw_path else request.url.path
    query = request.url.query
    return f"{path}?{query}" if query else path


def is_skipped(path: str, skip_prefixes: tuple[str, ...]) -> bool:
    """Check whether a path belongs to the admin/API surface."""
    return any(path.startswith(prefix) for prefix in skip_prefixes)


def resolve_request(resolver: RedirectResolver, request: Request) -> Resolution:
    """Resolve one request, passing the admin/API skip signal."""
    uri = request_uri(request)
    skip = request.method not in REDIRECTABLE_METHODS or is_skipped(
        request.url.path, resolver.config.skip_prefixes
    )
    return resolver.resolve(uri, request.headers.get("host", ""), is_admin_or_async=skip)


class RedirectMiddleware(BaseHTTPMiddleware):
    """Issues redirects for matching rules; otherwise passes the request on."""

    def __init__(
        self,
        app: ASGIApp,
        resolver_factory: Callable[[], RedirectResolver],
    ) -> None:
        super().__init__(app)
        self._resolver_factory = resolver_factory

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        try:
            resolver = self._resolver_factory()
        except Exception:
            logger.exception("Redirect resolver unavailable; serving request normally")
            return await call_next(request)

        # Store access is blocking; keep it off the event loop.
        result = await run_in_threadpool(resolve_request, resolver, request)

        if result.matched and result.target is not None and result.status is not None:
            return RedirectResponse(url=result.target, status_code=result.status)

        return await call_next(request)
