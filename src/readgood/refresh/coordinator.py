"""Refresh coordinator — fetch or reuse each source, then publish the merged list."""

from __future__ import annotations

import logging
import sqlite3
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from types import MappingProxyType
from typing import Callable, Iterable, Mapping

from readgood.ingestion.adapter import FetchError, FetchErrorKind, FetchResult, SourceAdapter
from readgood.ingestion.normalize import Item, Source
from readgood.refresh.guard import CycleState, RefreshGuard, fetch_all
from readgood.storage.item_store import ItemStore
from readgood.storage.ledger import FetchLedger

logger = logging.getLogger(__name__)


class RefreshStatus(str, Enum):
    ACCEPTED = "accepted"
    BUSY = "busy"


@dataclass(frozen=True)
class RefreshResult:
    """Snapshot published to subscribers at the end of every cycle."""

    items: tuple[Item, ...]
    started_at: datetime
    completed_at: datetime
    source_failures: frozenset[Source] = frozenset()
    failure_reasons: Mapping[Source, FetchError] = field(default_factory=dict)
    fetched: frozenset[Source] = frozenset()
    cache_hits: frozenset[Source] = frozenset()
    error: str | None = None

    def __post_init__(self) -> None:
        # Subscribers share one snapshot, so the mapping is read-only.
        object.__setattr__(self, "failure_reasons", MappingProxyType(dict(self.failure_reasons)))

    @property
    def ok(self) -> bool:
        return self.error is None


Subscriber = Callable[[RefreshResult], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def merge_items(per_source: Iterable[list[Item]]) -> tuple[Item, ...]:
    """Concatenate per-source lists, ranking each by score then recency.

    The first occurrence of a (source, source_id) key wins.
    """
    merged: dict[tuple[str, str], Item] = {}
    for items in per_source:
        ranked = sorted(items, key=lambda i: i.last_seen_at or "", reverse=True)
        ranked.sort(key=lambda i: i.score, reverse=True)
        for item in ranked:
            merged.setdefault(item.key, item)
    return tuple(merged.values())


class RefreshCoordinator:
    """Owns refresh cycles across all configured sources.

    Collaborators are injected: one adapter per source, the Item Store, the
    Fetch Ledger, and per-source cache windows (a missing or zero window
    means the source is fetched every cycle).
    """

    def __init__(
        self,
        adapters: Iterable[SourceAdapter],
        item_store: ItemStore,
        ledger: FetchLedger,
        cache_windows: Mapping[Source, timedelta] | None = None,
        *,
        source_timeout: float = 20.0,
        cycle_timeout: float = 45.0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._adapters: dict[Source, SourceAdapter] = {}
        for adapter in adapters:
            if adapter.source in self._adapters:
                raise ValueError(f"Duplicate adapter for source '{adapter.source.value}'")
            self._adapters[adapter.source] = adapter
        self._store = item_store
        self._ledger = ledger
        self._cache_windows = dict(cache_windows or {})
        self._source_timeout = source_timeout
        self._cycle_timeout = cycle_timeout
        self._clock = clock

        self._guard = RefreshGuard()
        self._subscribers: list[Subscriber] = []
        self._subscribers_lock = threading.Lock()
        self._latest: RefreshResult | None = None
        self._last_success: RefreshResult | None = None
        self._thread: threading.Thread | None = None

    # ------------------------------------------------------------------
    # Public surface
    # ------------------------------------------------------------------
    @property
    def sources(self) -> list[Source]:
        return list(self._adapters)

    @property
    def state(self) -> CycleState:
        return self._guard.state

    @property
    def latest(self) -> RefreshResult | None:
        """The most recently published result, if any."""
        return self._latest

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a completion callback. Returns a function that unsubscribes."""
        with self._subscribers_lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._subscribers_lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def request_refresh(self, block: bool = False) -> RefreshStatus:
        """Start a refresh cycle unless one is already running.

        With ``block=False`` the cycle runs on a background thread and this
        returns immediately; ``join()`` waits for it. A second request while
        a cycle runs gets BUSY and is not queued.
        """
        if not self._guard.try_enter():
            logger.debug("Refresh already in progress, skipping")
            return RefreshStatus.BUSY

        if block:
            self._run_guarded()
        else:
            self._thread = threading.Thread(
                target=self._run_guarded, name="readgood-refresh", daemon=True
            )
            self._thread.start()
        return RefreshStatus.ACCEPTED

    def join(self, timeout: float | None = None) -> bool:
        """Wait for a background cycle. Returns True if no cycle is running."""
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
            return not thread.is_alive()
        return True

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------
    def _run_guarded(self) -> None:
        failed = True
        try:
            result = self._run_cycle()
            failed = not result.ok
        except Exception:
            logger.exception("Refresh cycle crashed")
        finally:
            self._guard.release(failed=failed)

    def _run_cycle(self) -> RefreshResult:
        started_at = self._clock()
        logger.info("Starting refresh cycle across %d sources", len(self._adapters))

        per_source: dict[Source, list[Item]] = {}
        failures: dict[Source, FetchError] = {}
        cache_hits: set[Source] = set()
        to_fetch: dict[Source, Callable[[], FetchResult]] = {}

        for source, adapter in self._adapters.items():
            window = self._cache_windows.get(source, timedelta(0))
            try:
                stale = self._ledger.should_refresh(source, window, now=started_at)
                if not stale:
                    per_source[source] = self._stored_items(source)
            except sqlite3.Error as exc:
                logger.exception("Ledger read failed for '%s'", source.value)
                failures[source] = FetchError(FetchErrorKind.STORAGE_FAILURE, str(exc))
                per_source[source] = []
                continue
            if stale:
                to_fetch[source] = adapter.fetch
            else:
                cache_hits.add(source)
                logger.info(
                    "Cache hit for '%s': reusing %d stored items",
                    source.value, len(per_source[source]),
                )

        results = fetch_all(
            to_fetch,
            source_timeout=self._source_timeout,
            cycle_timeout=self._cycle_timeout,
        )

        fetched: set[Source] = set()
        for source, result in results.items():
            if result.ok:
                stored = self._persist(source, result)
                if stored is not None:
                    per_source[source] = stored
                    fetched.add(source)
                    continue
                failures[source] = FetchError(
                    FetchErrorKind.STORAGE_FAILURE, "could not persist fetched items"
                )
            else:
                failures[source] = result.error
                logger.warning("Source '%s' failed: %s", source.value, result.error)
            per_source[source] = self._fallback_items(source)

        completed_at = self._clock()
        ordered = [per_source.get(source, []) for source in self._adapters]

        if self._adapters and len(failures) == len(self._adapters):
            previous = self._last_success
            items = previous.items if previous is not None else merge_items(ordered)
            result = RefreshResult(
                items=items,
                started_at=started_at,
                completed_at=completed_at,
                source_failures=frozenset(failures),
                failure_reasons=failures,
                error="All sources failed",
            )
            logger.error(
                "Refresh cycle failed: all %d sources failed (%s)",
                len(failures), ", ".join(f"{s.value}={e.kind.value}" for s, e in failures.items()),
            )
        else:
            result = RefreshResult(
                items=merge_items(ordered),
                started_at=started_at,
                completed_at=completed_at,
                source_failures=frozenset(failures),
                failure_reasons=failures,
                fetched=frozenset(fetched),
                cache_hits=frozenset(cache_hits),
            )
            self._last_success = result
            logger.info(
                "Refresh cycle complete: %d items (%d fetched, %d cached, %d failed)",
                len(result.items), len(fetched), len(cache_hits), len(failures),
            )

        self._publish(result)
        return result

    def _persist(self, source: Source, result: FetchResult) -> list[Item] | None:
        """Upsert fetched items and record the fetch. None on storage failure."""
        fetched_at = self._clock()
        try:
            stored = self._store.bulk_upsert(result.items, now=fetched_at)
            self._ledger.record_success(source, fetched_at)
        except sqlite3.Error:
            logger.exception("Storage failure while saving items from '%s'", source.value)
            return None
        return stored

    def _stored_items(self, source: Source) -> list[Item]:
        """Items from the source's last successful fetch."""
        last = self._ledger.last_fetched_at(source)
        if last is None:
            return []
        return self._store.get_all(source=source, since=last)

    def _fallback_items(self, source: Source) -> list[Item]:
        try:
            return self._stored_items(source)
        except sqlite3.Error:
            logger.exception("Could not read cached items for '%s'", source.value)
            return []

    def _publish(self, result: RefreshResult) -> None:
        self._latest = result
        with self._subscribers_lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(result)
            except Exception:
                logger.exception("Refresh subscriber %r failed", callback)
