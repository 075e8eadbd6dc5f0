import os
from functools import lru_cache
from pathlib import Path

from fastapi import Depends

from seo_redirects.adapters.clock import SystemClock
from seo_redirects.adapters.sqlite.repos import SQLiteRedirectRepo
from seo_redirects.components.redirects import (
    HitTracker,
    RedirectConfig,
    RedirectResolver,
    RedirectService,
)
from seo_redirects.rules.loader import config_from_rules, load_rules
from seo_redirects.rules.models import Rules


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.data_dir = Path(os.environ.get("SEO_REDIRECTS_DATA_DIR", "./data"))
        self.db_path = str(self.data_dir / "redirects.db")
        self.rules_path = Path(
            os.environ.get("SEO_REDIRECTS_RULES", str(self.base_dir / "rules.yaml"))
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules(settings: Settings = Depends(get_settings)) -> Rules:
    return load_rules(settings.rules_path)


def get_redirect_config(rules: Rules = Depends(get_rules)) -> RedirectConfig:
    return config_from_rules(rules)


# --- Repos ---
def get_redirect_repo(settings: Settings = Depends(get_settings)) -> SQLiteRedirectRepo:
    return SQLiteRedirectRepo(settings.db_path, time_port=SystemClock())


# --- Component Services ---
def get_redirect_service(
    repo: SQLiteRedirectRepo = Depends(get_redirect_repo),
    config: RedirectConfig = Depends(get_redirect_config),
) -> RedirectService:
    """Get redirect admin service."""
    return RedirectService(store=repo, config=config)


# --- Request path ---
@lru_cache
def get_hit_tracker() -> HitTracker:
    """Process-wide hit tracker (owns the background write pool)."""
    settings = get_settings()
    config = config_from_rules(get_rules(settings))
    return HitTracker(
        store=get_redirect_repo(settings),
        time_port=SystemClock(),
        run_async=config.async_hits,
        max_workers=config.hit_workers,
    )


def get_resolver() -> RedirectResolver:
    """Resolver for the public request path (used outside FastAPI's DI)."""
    settings = get_settings()
    config = config_from_rules(get_rules(settings))
    return RedirectResolver(
        store=get_redirect_repo(settings),
        hit_recorder=get_hit_tracker() if config.track_hits else None,
        config=config,
    )
