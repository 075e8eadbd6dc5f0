import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI

from seo_redirects.adapters.sqlite.migrator import SQLiteMigrator
from seo_redirects.api.deps import get_hit_tracker, get_resolver, get_rules, get_settings
from seo_redirects.api.routes import admin_redirects
from seo_redirects.api.routes.public_redirects import RedirectMiddleware

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    # Load rules and migrate on startup (fail-fast)
    get_rules(settings)
    logger.info("Rules loaded from %s", settings.rules_path)

    settings.data_dir.mkdir(parents=True, exist_ok=True)
    SQLiteMigrator(settings.db_path).run_migrations()

    yield

    get_hit_tracker().close()


app = FastAPI(
    title="SEO Redirects API",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.include_router(admin_redirects.router, prefix="/api/admin", tags=["Admin Redirects"])
app.add_middleware(RedirectMiddleware, resolver_factory=get_resolver)


@app.get("/health")
def health_check() -> dict[str, Any]:
    """Health check endpoint."""
    return {"status": "ok", "service": "redirects"}
