"""API route handlers for the ReadGood web API."""

from __future__ import annotations

import logging
import sqlite3

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from readgood.engagement.clicks import handle_click
from readgood.ingestion.normalize import Source
from readgood.refresh.coordinator import RefreshCoordinator, RefreshStatus
from readgood.storage.connection import get_connection
from readgood.storage.item_store import ItemStore, to_timestamp
from readgood.web.models import (
    ClickRequest,
    ItemListResponse,
    ItemSummary,
    RefreshAccepted,
    RefreshStatusResponse,
    StatsResponse,
)
from readgood.web.queries import get_stats, list_gems, list_recent, list_unread

logger = logging.getLogger(__name__)

router = APIRouter()
health_router = APIRouter()

_VIEWS = ("latest", "all", "unread", "recent", "gems")


def _coordinator(request: Request) -> RefreshCoordinator | None:
    return getattr(request.app.state, "coordinator", None)


def _parse_source(value: str) -> Source:
    try:
        return Source(value)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown source '{value}'") from None


@health_router.get("/health")
def health(request: Request) -> JSONResponse:
    """Check database connectivity and return health status."""
    database_path = request.app.state.database_path
    try:
        with get_connection(database_path) as conn:
            conn.execute("SELECT 1")
    except (sqlite3.Error, OSError) as exc:
        logger.warning("Health check failed: %s", exc)
        return JSONResponse(
            {"status": "unhealthy", "database": "error", "detail": str(exc)},
            status_code=503,
        )
    coordinator = _coordinator(request)
    refresh_state = coordinator.state.value if coordinator is not None else "disabled"
    return JSONResponse({"status": "healthy", "database": "ok", "refresh": refresh_state})


@router.get("/stats", response_model=StatsResponse)
def stats(request: Request) -> StatsResponse:
    database_path = request.app.state.database_path
    data = get_stats(database_path)
    return StatsResponse(**data)


@router.get("/items", response_model=ItemListResponse)
def items(
    request: Request,
    view: str = "latest",
    source: str | None = None,
    limit: int = Query(100, ge=1, le=500),
) -> ItemListResponse:
    """List items.

    ``latest`` is the list published by the most recent refresh cycle, falling
    back to every stored item when no cycle has completed yet. Its order comes
    from the snapshot but engagement state and tags are read from the store.
    """
    if view not in _VIEWS:
        raise HTTPException(status_code=400, detail=f"view must be one of: {', '.join(_VIEWS)}")
    database_path = request.app.state.database_path
    source_filter = _parse_source(source) if source is not None else None

    refreshed_at = None
    failures: dict[str, str] = {}
    coordinator = _coordinator(request)
    latest = coordinator.latest if coordinator is not None else None

    if view == "latest" and latest is not None:
        rows = [i for i in latest.items if source_filter is None or i.source is source_filter]
        rows = rows[:limit]
        stored = ItemStore(database_path).get_many(i.key for i in rows)
        rows = [stored.get(i.key, i) for i in rows]
        refreshed_at = to_timestamp(latest.completed_at)
        failures = {s.value: str(e) for s, e in latest.failure_reasons.items()}
    elif view in ("latest", "all"):
        rows = ItemStore(database_path).get_all(source=source_filter, limit=limit)
    elif view == "unread":
        rows = list_unread(database_path, source=source_filter, limit=limit)
    elif view == "recent":
        rows = list_recent(database_path, limit=min(limit, 50))
    else:
        rows = list_gems(database_path, source=source_filter, limit=limit)

    return ItemListResponse(
        items=[ItemSummary.from_item(i) for i in rows],
        total=len(rows),
        view=view,
        refreshed_at=refreshed_at,
        source_failures=failures,
    )


@router.get("/search", response_model=ItemListResponse)
def search(
    request: Request,
    q: str = Query(..., min_length=1),
    limit: int = Query(100, ge=1, le=500),
) -> ItemListResponse:
    """Title search, or tag search when the query contains a comma."""
    rows = ItemStore(request.app.state.database_path).search(q, limit=limit)
    return ItemListResponse(
        items=[ItemSummary.from_item(i) for i in rows],
        total=len(rows),
        view="search",
    )


@router.get("/refresh", response_model=RefreshStatusResponse)
def refresh_status(request: Request) -> RefreshStatusResponse:
    coordinator = _coordinator(request)
    if coordinator is None:
        raise HTTPException(status_code=503, detail="Refresh is not configured")
    latest = coordinator.latest
    if latest is None:
        return RefreshStatusResponse(state=coordinator.state.value)
    return RefreshStatusResponse(
        state=coordinator.state.value,
        started_at=to_timestamp(latest.started_at),
        completed_at=to_timestamp(latest.completed_at),
        items=len(latest.items),
        fetched=sorted(s.value for s in latest.fetched),
        cache_hits=sorted(s.value for s in latest.cache_hits),
        source_failures={s.value: str(e) for s, e in latest.failure_reasons.items()},
        error=latest.error,
    )


@router.post("/refresh", status_code=202, response_model=RefreshAccepted)
def refresh(request: Request):
    """Start a refresh cycle. 409 if one is already running."""
    coordinator = _coordinator(request)
    if coordinator is None:
        raise HTTPException(status_code=503, detail="Refresh is not configured")
    status = coordinator.request_refresh()
    if status is RefreshStatus.BUSY:
        return JSONResponse(
            {"status": status.value, "state": coordinator.state.value},
            status_code=409,
        )
    return RefreshAccepted(status=status.value, state=coordinator.state.value)


@router.post("/items/{source}/{source_id:path}/click", response_model=ItemSummary)
def click(request: Request, source: str, source_id: str, body: ClickRequest) -> ItemSummary:
    """Record a click and open the item's links. Article clicks also tag it."""
    item, _ = handle_click(
        ItemStore(request.app.state.database_path),
        _parse_source(source),
        source_id,
        body.click_type,
        opener=request.app.state.opener,
        tagger=request.app.state.tagger,
    )
    if item is None:
        raise HTTPException(status_code=404, detail="Item not found")
    return ItemSummary.from_item(item)
