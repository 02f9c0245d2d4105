"""Tests for readgood.config."""

import os
from datetime import timedelta

import pytest

from readgood.config import load_config
from readgood.ingestion.normalize import Source

_CONFIG_VARS = (
    "DATABASE_PATH", "REFRESH_INTERVAL_MINUTES", "HN_CACHE_MINUTES",
    "REDDIT_CACHE_MINUTES", "PINBOARD_CACHE_MINUTES", "SOURCE_TIMEOUT_SECONDS",
    "CYCLE_TIMEOUT_SECONDS", "REQUEST_TIMEOUT_SECONDS", "MAX_ITEMS_PER_SOURCE", "USER_AGENT",
    "WEB_HOST", "WEB_PORT", "LOG_LEVEL", "LOG_FORMAT", "APP_ENV", "MAX_TAGS",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Remove all config-related env vars before each test."""
    for key in list(os.environ):
        if key in _CONFIG_VARS or key.startswith(("LLM_", "REDDIT_")):
            monkeypatch.delenv(key, raising=False)
    # Prevent .env file from re-setting variables during tests
    monkeypatch.setattr("readgood.config.load_dotenv", lambda *a, **kw: None)


def test_missing_required_vars_raises():
    """load_config raises ValueError listing the missing variable."""
    with pytest.raises(ValueError, match="DATABASE_PATH"):
        load_config()


def test_load_config_defaults(monkeypatch):
    monkeypatch.setenv("DATABASE_PATH", "./test.db")

    config = load_config()

    assert config.database_path == "./test.db"
    assert config.refresh_interval_minutes == 5
    assert config.hn_cache_minutes == 0
    assert config.reddit_cache_minutes == 15
    assert config.pinboard_cache_minutes == 30
    assert config.source_timeout_seconds == 20.0
    assert config.cycle_timeout_seconds == 45.0
    assert config.request_timeout_seconds == 5.0
    assert config.max_items_per_source == 15
    assert "news" in config.reddit_subreddits
    assert config.reddit_client_id == ""
    assert config.tagging_enabled is False
    assert config.web_port == 3002
    assert config.log_format == "json"


def test_optional_overrides(monkeypatch):
    monkeypatch.setenv("DATABASE_PATH", "/data/readgood.db")
    monkeypatch.setenv("REDDIT_CACHE_MINUTES", "5")
    monkeypatch.setenv("REDDIT_SUBREDDITS", "python, rust ,,golang")
    monkeypatch.setenv("REDDIT_CLIENT_ID", "cid")
    monkeypatch.setenv("REDDIT_CLIENT_SECRET", "secret")
    monkeypatch.setenv("LLM_API_KEY", "sk-test")
    monkeypatch.setenv("SOURCE_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("WEB_PORT", "9000")

    config = load_config()

    assert config.reddit_cache_minutes == 5
    assert config.reddit_subreddits == ("python", "rust", "golang")
    assert config.reddit_client_id == "cid"
    assert config.reddit_client_secret == "secret"
    assert config.tagging_enabled is True
    assert config.source_timeout_seconds == 2.5
    assert config.web_port == 9000


def test_cache_windows_per_source(monkeypatch):
    monkeypatch.setenv("DATABASE_PATH", "./test.db")
    monkeypatch.setenv("PINBOARD_CACHE_MINUTES", "60")

    windows = load_config().cache_windows()

    assert windows == {
        Source.HN: timedelta(0),
        Source.REDDIT: timedelta(minutes=15),
        Source.PINBOARD: timedelta(minutes=60),
    }


def test_negative_cache_window_rejected(monkeypatch):
    monkeypatch.setenv("DATABASE_PATH", "./test.db")
    monkeypatch.setenv("HN_CACHE_MINUTES", "-1")

    with pytest.raises(ValueError, match="hn_cache_minutes"):
        load_config()
