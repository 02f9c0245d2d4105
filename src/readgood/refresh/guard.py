"""Refresh guard — single-cycle mutual exclusion and deadline-bounded fan-out."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from enum import Enum
from typing import Callable, Mapping

from readgood.ingestion.adapter import FetchErrorKind, FetchResult
from readgood.ingestion.normalize import Source

logger = logging.getLogger(__name__)


class CycleState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    FAILED = "failed"


class RefreshGuard:
    """Admits at most one refresh cycle at a time. Never queues."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._state = CycleState.IDLE

    @property
    def state(self) -> CycleState:
        return self._state

    @property
    def running(self) -> bool:
        return self._state is CycleState.RUNNING

    def try_enter(self) -> bool:
        """Enter the running state. Returns False if a cycle is already running."""
        if not self._lock.acquire(blocking=False):
            return False
        self._state = CycleState.RUNNING
        return True

    def release(self, failed: bool = False) -> None:
        """Leave the running state, landing in failed or idle."""
        self._state = CycleState.FAILED if failed else CycleState.IDLE
        self._lock.release()


def _collect(source: Source, future: Future) -> FetchResult:
    """Turn a finished adapter call into a FetchResult, whatever it did."""
    try:
        result = future.result()
    except Exception as exc:
        logger.exception("Adapter '%s' raised during fetch", source.value)
        return FetchResult.failure(FetchErrorKind.NETWORK_FAILURE, f"unexpected adapter error: {exc}")
    if not isinstance(result, FetchResult):
        return FetchResult.failure(
            FetchErrorKind.PARSE_FAILURE,
            f"adapter returned {type(result).__name__}, expected FetchResult",
        )
    return result


def fetch_all(
    calls: Mapping[Source, Callable[[], FetchResult]],
    *,
    source_timeout: float,
    cycle_timeout: float,
) -> dict[Source, FetchResult]:
    """Run every fetch call concurrently and collect results within deadlines.

    Each call gets ``source_timeout`` seconds, and no call may outlive the
    cycle deadline ``cycle_timeout`` seconds from start. A call that misses
    its deadline yields a timeout failure and is abandoned: its worker thread
    is left to finish on its own and whatever it eventually returns is never
    read.
    """
    if not calls:
        return {}

    start = time.monotonic()
    cycle_deadline = start + cycle_timeout
    source_deadline = min(start + source_timeout, cycle_deadline)

    executor = ThreadPoolExecutor(max_workers=len(calls), thread_name_prefix="readgood-fetch")
    try:
        futures = {executor.submit(call): source for source, call in calls.items()}
        results: dict[Source, FetchResult] = {}
        pending: set[Future] = set(futures)

        while pending:
            remaining = max(source_deadline - time.monotonic(), 0.0)
            done, pending = wait(pending, timeout=remaining, return_when=FIRST_COMPLETED)
            for future in done:
                results[futures[future]] = _collect(futures[future], future)

            if pending and time.monotonic() >= source_deadline:
                which = "cycle" if source_deadline >= cycle_deadline else "source"
                for future in pending:
                    source = futures[future]
                    future.cancel()
                    logger.warning(
                        "Adapter '%s' exceeded the %s deadline; abandoning call",
                        source.value, which,
                    )
                    results[source] = FetchResult.failure(
                        FetchErrorKind.TIMEOUT, f"exceeded {which} deadline"
                    )
                pending = set()
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    return {source: results[source] for source in calls}
