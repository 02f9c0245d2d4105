"""Configuration loading and validation."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv

from readgood.ingestion.normalize import Source

_DEFAULT_SUBREDDITS = (
    "news", "television", "elixir", "aitah",
    "bestofredditorupdates", "explainlikeimfive",
)


@dataclass(frozen=True)
class Config:
    """Application configuration. All values sourced from environment variables."""

    # Required
    database_path: str

    # Optional — Refresh
    refresh_interval_minutes: int = 5
    hn_cache_minutes: int = 0
    reddit_cache_minutes: int = 15
    pinboard_cache_minutes: int = 30
    source_timeout_seconds: float = 20.0
    cycle_timeout_seconds: float = 45.0
    request_timeout_seconds: float = 5.0

    # Optional — Sources
    max_items_per_source: int = 15
    reddit_subreddits: tuple[str, ...] = _DEFAULT_SUBREDDITS
    reddit_client_id: str = ""
    reddit_client_secret: str = ""
    user_agent: str = "ReadGood/1.0"

    # Optional — Tagging
    llm_api_key: str = ""
    llm_model: str = "claude-3-5-haiku-latest"
    llm_max_retries: int = 2
    llm_timeout_seconds: int = 15
    max_tags: int = 8

    # Optional — Web
    web_host: str = "127.0.0.1"
    web_port: int = 3002

    # Optional — Application
    log_level: str = "INFO"
    log_format: str = "json"
    app_env: str = "production"

    def cache_windows(self) -> dict[Source, timedelta]:
        """Per-source cache horizon. A zero window means always fetch."""
        return {
            Source.HN: timedelta(minutes=self.hn_cache_minutes),
            Source.REDDIT: timedelta(minutes=self.reddit_cache_minutes),
            Source.PINBOARD: timedelta(minutes=self.pinboard_cache_minutes),
        }

    @property
    def tagging_enabled(self) -> bool:
        return bool(self.llm_api_key)


_REQUIRED_VARS = [
    "DATABASE_PATH",
]


def _parse_subreddits(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return _DEFAULT_SUBREDDITS
    return tuple(s.strip() for s in raw.split(",") if s.strip())


def load_config(env_path: str | Path | None = None) -> Config:
    """Load configuration from environment variables.

    Loads a .env file if present (for local development), then validates
    that all required variables are set. Raises ValueError listing any
    missing variables or any negative cache window.
    """
    load_dotenv(dotenv_path=env_path)

    missing = [var for var in _REQUIRED_VARS if not os.environ.get(var)]
    if missing:
        raise ValueError(
            f"Missing required environment variables: {', '.join(missing)}"
        )

    config = Config(
        # Required
        database_path=os.environ["DATABASE_PATH"],
        # Optional — Refresh
        refresh_interval_minutes=int(os.environ.get("REFRESH_INTERVAL_MINUTES", "5")),
        hn_cache_minutes=int(os.environ.get("HN_CACHE_MINUTES", "0")),
        reddit_cache_minutes=int(os.environ.get("REDDIT_CACHE_MINUTES", "15")),
        pinboard_cache_minutes=int(os.environ.get("PINBOARD_CACHE_MINUTES", "30")),
        source_timeout_seconds=float(os.environ.get("SOURCE_TIMEOUT_SECONDS", "20")),
        cycle_timeout_seconds=float(os.environ.get("CYCLE_TIMEOUT_SECONDS", "45")),
        request_timeout_seconds=float(os.environ.get("REQUEST_TIMEOUT_SECONDS", "5")),
        # Optional — Sources
        max_items_per_source=int(os.environ.get("MAX_ITEMS_PER_SOURCE", "15")),
        reddit_subreddits=_parse_subreddits(os.environ.get("REDDIT_SUBREDDITS")),
        reddit_client_id=os.environ.get("REDDIT_CLIENT_ID", ""),
        reddit_client_secret=os.environ.get("REDDIT_CLIENT_SECRET", ""),
        user_agent=os.environ.get("USER_AGENT", "ReadGood/1.0"),
        # Optional — Tagging
        llm_api_key=os.environ.get("LLM_API_KEY", ""),
        llm_model=os.environ.get("LLM_MODEL", "claude-3-5-haiku-latest"),
        llm_max_retries=int(os.environ.get("LLM_MAX_RETRIES", "2")),
        llm_timeout_seconds=int(os.environ.get("LLM_TIMEOUT_SECONDS", "15")),
        max_tags=int(os.environ.get("MAX_TAGS", "8")),
        # Optional — Web
        web_host=os.environ.get("WEB_HOST", "127.0.0.1"),
        web_port=int(os.environ.get("WEB_PORT", "3002")),
        # Optional — Application
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        log_format=os.environ.get("LOG_FORMAT", "json"),
        app_env=os.environ.get("APP_ENV", "production"),
    )

    negative = [
        name for name in ("hn_cache_minutes", "reddit_cache_minutes", "pinboard_cache_minutes")
        if getattr(config, name) < 0
    ]
    if negative:
        raise ValueError(f"Cache windows must be non-negative: {', '.join(negative)}")

    return config
