"""Job wiring — adapters, coordinator, run log, and the scheduled refresh."""

from __future__ import annotations

import json
import logging
import uuid
from functools import partial
from typing import Callable

from readgood.config import Config
import readgood.ingestion  # noqa: F401  — triggers adapter registration
from readgood.ingestion.adapter import SourceAdapter
from readgood.ingestion.normalize import Item, Source
from readgood.ingestion.registry import get_adapter_class
from readgood.refresh.coordinator import RefreshCoordinator, RefreshResult, RefreshStatus
from readgood.storage.connection import get_connection
from readgood.storage.item_store import ItemStore, to_timestamp
from readgood.storage.ledger import FetchLedger
from readgood.tagging.tagger import tag_item

logger = logging.getLogger(__name__)

# Merge order of the published list.
SOURCE_ORDER = (Source.HN, Source.REDDIT, Source.PINBOARD)


def _adapter_settings(config: Config, source: Source) -> dict:
    settings: dict = {
        "max_items": config.max_items_per_source,
        # Per-request budget; the guard enforces the whole-source deadline.
        "timeout": min(config.request_timeout_seconds, config.source_timeout_seconds),
        "user_agent": config.user_agent,
    }
    if source is Source.REDDIT:
        settings.update(
            subreddits=list(config.reddit_subreddits),
            client_id=config.reddit_client_id,
            client_secret=config.reddit_client_secret,
        )
    return settings


def build_adapters(config: Config) -> list[SourceAdapter]:
    """Instantiate and configure one adapter per source, in merge order."""
    adapters: list[SourceAdapter] = []
    for source in SOURCE_ORDER:
        adapter_cls = get_adapter_class(source.value)
        if adapter_cls is None:
            logger.warning("No adapter registered for source '%s', skipping", source.value)
            continue
        adapter = adapter_cls()
        adapter.configure(_adapter_settings(config, source))
        adapters.append(adapter)
    return adapters


def _record_run(
    database_path: str,
    started_at: str,
    finished_at: str,
    result: dict,
    error: str | None = None,
) -> None:
    """Insert a refresh run record into the refresh_runs table."""
    status = "error" if error else "success"
    with get_connection(database_path) as conn:
        conn.execute(
            "INSERT INTO refresh_runs "
            "(id, started_at, finished_at, status, result, error) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (
                str(uuid.uuid4()),
                started_at,
                finished_at,
                status,
                json.dumps(result),
                error,
            ),
        )


def summarize_result(result: RefreshResult) -> dict:
    """JSON-serializable summary of a cycle for the run log."""
    return {
        "items": len(result.items),
        "fetched": sorted(s.value for s in result.fetched),
        "cache_hits": sorted(s.value for s in result.cache_hits),
        "failures": {
            source.value: str(error) for source, error in sorted(
                result.failure_reasons.items(), key=lambda kv: kv[0].value
            )
        },
    }


def record_refresh_run(database_path: str, result: RefreshResult) -> None:
    """Coordinator subscriber that persists every published cycle."""
    _record_run(
        database_path,
        to_timestamp(result.started_at),
        to_timestamp(result.completed_at),
        summarize_result(result),
        error=result.error,
    )


def build_tagger(config: Config, store: ItemStore) -> Callable[[Item], object] | None:
    """Tagging callable for article clicks, or None when no LLM key is set."""
    if not config.tagging_enabled:
        return None
    return partial(
        tag_item,
        store=store,
        api_key=config.llm_api_key,
        model=config.llm_model,
        max_tags=config.max_tags,
        max_retries=config.llm_max_retries,
        timeout=config.llm_timeout_seconds,
    )


def build_coordinator(config: Config) -> RefreshCoordinator:
    """Assemble the coordinator and subscribe the run log."""
    coordinator = RefreshCoordinator(
        build_adapters(config),
        ItemStore(config.database_path),
        FetchLedger(config.database_path),
        config.cache_windows(),
        source_timeout=config.source_timeout_seconds,
        cycle_timeout=config.cycle_timeout_seconds,
    )
    coordinator.subscribe(partial(record_refresh_run, config.database_path))
    return coordinator


def run_refresh(coordinator: RefreshCoordinator) -> RefreshStatus:
    """Scheduled job: start a cycle unless one is already running."""
    status = coordinator.request_refresh()
    if status is RefreshStatus.BUSY:
        logger.info("Scheduled refresh skipped: a cycle is already running")
    return status
