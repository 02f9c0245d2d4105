"""Pydantic v2 request and response models for the ReadGood web API."""

from __future__ import annotations

from pydantic import BaseModel

from readgood.engagement.archive import archive_url
from readgood.engagement.clicks import ClickType
from readgood.ingestion.normalize import Item


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------
class StatsResponse(BaseModel):
    total_items: int
    viewed_items: int
    total_clicks: int
    total_tags: int
    items_by_source: dict[str, int]
    clicks_by_type: dict[str, int]
    top_tags: dict[str, int]
    last_fetched_at: dict[str, str]
    last_refresh_at: str | None
    last_refresh_status: str | None


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------
class ItemSummary(BaseModel):
    source: str
    source_name: str
    source_id: str
    title: str
    url: str | None
    discussion_url: str | None
    archive_url: str
    score: int
    reply_count: int
    author: str | None
    first_seen_at: str | None
    last_seen_at: str | None
    times_appeared: int
    viewed: bool
    viewed_at: str | None
    view_count: int
    tags: list[str]

    @classmethod
    def from_item(cls, item: Item) -> ItemSummary:
        return cls(
            source=item.source.value,
            source_name=item.source.display_name,
            source_id=item.source_id,
            title=item.title,
            url=item.url,
            discussion_url=item.discussion_url,
            archive_url=archive_url(item.url),
            score=item.score,
            reply_count=item.reply_count,
            author=item.author,
            first_seen_at=item.first_seen_at,
            last_seen_at=item.last_seen_at,
            times_appeared=item.times_appeared,
            viewed=item.viewed,
            viewed_at=item.viewed_at,
            view_count=item.view_count,
            tags=sorted(item.tags),
        )


class ItemListResponse(BaseModel):
    items: list[ItemSummary]
    total: int
    view: str
    refreshed_at: str | None = None
    source_failures: dict[str, str] = {}


# ---------------------------------------------------------------------------
# Refresh
# ---------------------------------------------------------------------------
class RefreshAccepted(BaseModel):
    status: str
    state: str


class RefreshStatusResponse(BaseModel):
    state: str
    started_at: str | None = None
    completed_at: str | None = None
    items: int = 0
    fetched: list[str] = []
    cache_hits: list[str] = []
    source_failures: dict[str, str] = {}
    error: str | None = None


# ---------------------------------------------------------------------------
# Clicks
# ---------------------------------------------------------------------------
class ClickRequest(BaseModel):
    click_type: ClickType = ClickType.ARTICLE
