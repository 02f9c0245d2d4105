"""Refresh — cycle coordination with a bounded fan-out over sources."""

from readgood.refresh.coordinator import (
    RefreshCoordinator,
    RefreshResult,
    RefreshStatus,
    merge_items,
)
from readgood.refresh.guard import CycleState, RefreshGuard, fetch_all

__all__ = [
    "CycleState",
    "RefreshCoordinator",
    "RefreshGuard",
    "RefreshResult",
    "RefreshStatus",
    "fetch_all",
    "merge_items",
]
