"""Item model and normalization of adapter output into canonical Items."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)


class Source(str, Enum):
    """External origin of an item. Values are the persisted identifiers."""

    HN = "hn"
    REDDIT = "reddit"
    PINBOARD = "pinboard"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


_DISPLAY_NAMES = {
    Source.HN: "Hacker News",
    Source.REDDIT: "Reddit",
    Source.PINBOARD: "Pinboard",
}


@dataclass(frozen=True)
class Item:
    """Canonical representation of one story or bookmark.

    Adapters populate the descriptive fields only; the seen/engagement
    fields are owned by the Item Store and carry their defaults until an
    item has been persisted.
    """

    source: Source
    source_id: str
    title: str
    url: str | None = None
    discussion_url: str | None = None
    score: int = 0
    reply_count: int = 0
    author: str | None = None

    first_seen_at: str | None = None
    last_seen_at: str | None = None
    times_appeared: int = 0
    viewed: bool = False
    viewed_at: str | None = None
    view_count: int = 0
    tags: frozenset[str] = field(default_factory=frozenset)

    @property
    def key(self) -> tuple[str, str]:
        """Composite identity: (source value, source id as string)."""
        return (self.source.value, self.source_id)


def _validate(item: Item) -> list[str]:
    """Validate an adapter-produced Item. Returns a list of errors."""
    errors: list[str] = []
    if not isinstance(item.source, Source):
        errors.append(f"source '{item.source}' is not a known source")
    if not item.source_id:
        errors.append("source_id is required and must be non-empty")
    if not item.title or not item.title.strip():
        errors.append("title is required and must be non-empty")
    if item.score < 0:
        errors.append(f"score must be >= 0, got {item.score}")
    if item.reply_count < 0:
        errors.append(f"reply_count must be >= 0, got {item.reply_count}")
    return errors


def make_item(
    source: Source,
    source_id: str | int,
    title: str,
    *,
    url: str | None = None,
    discussion_url: str | None = None,
    score: int | None = 0,
    reply_count: int | None = 0,
    author: str | None = None,
) -> Item:
    """Build an Item from raw adapter fields.

    Native identifiers of any type are normalized to their string form so the
    composite key is stable across sources. Negative or missing counts are
    clamped to zero. Raises ValueError if the resulting item is invalid.
    """
    item = Item(
        source=source,
        source_id=str(source_id).strip() if source_id is not None else "",
        title=(title or "").strip(),
        url=url or None,
        discussion_url=discussion_url or None,
        score=max(int(score or 0), 0),
        reply_count=max(int(reply_count or 0), 0),
        author=author or None,
    )
    errors = _validate(item)
    if errors:
        raise ValueError(f"Invalid Item: {'; '.join(errors)}")
    return item


def normalize_tags(tags, max_tags: int | None = None) -> list[str]:
    """Lowercase, strip, and deduplicate tags, preserving first-seen order."""
    seen: list[str] = []
    for tag in tags:
        cleaned = str(tag).strip().lower()
        if cleaned and cleaned not in seen:
            seen.append(cleaned)
    if max_tags is not None:
        seen = seen[:max_tags]
    return seen
