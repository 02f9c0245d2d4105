"""Click tracking and link opening."""

from __future__ import annotations

import logging
import threading
import uuid
import webbrowser
from datetime import datetime
from enum import Enum
from typing import Callable

from readgood.engagement.archive import archive_url
from readgood.ingestion.normalize import Item, Source
from readgood.storage.connection import get_connection
from readgood.storage.item_store import ItemStore, to_timestamp

logger = logging.getLogger(__name__)


class ClickType(str, Enum):
    ARTICLE = "article"
    COMMENTS = "comments"
    ARCHIVE = "archive"


def record_click(
    store: ItemStore,
    source: Source,
    source_id: str,
    click_type: ClickType,
    now: datetime | None = None,
) -> Item | None:
    """Mark the item viewed and log the click. Returns None for unknown items."""
    item = store.mark_viewed(source, source_id, now=now)
    if item is None:
        logger.warning("Click on unknown item %s:%s", source.value, source_id)
        return None

    with get_connection(store.database_path) as conn:
        conn.execute(
            "INSERT INTO clicks (id, source, source_id, click_type, clicked_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (str(uuid.uuid4()), source.value, source_id, click_type.value, to_timestamp(now)),
        )
    logger.info("Recorded %s click on %s:%s", click_type.value, source.value, source_id)
    return item


def urls_to_open(item: Item, click_type: ClickType) -> list[str]:
    """The links a click opens, in the order they should be opened.

    An article click opens the archive link first, then the discussion
    (HN, Reddit), then the article itself. Reddit only opens the article
    when it differs from the discussion. Duplicates are dropped.
    """
    if click_type is ClickType.COMMENTS:
        return [item.discussion_url] if item.discussion_url else []
    if click_type is ClickType.ARCHIVE:
        return [archive_url(item.url)]

    urls = [archive_url(item.url)]
    if item.source is Source.HN:
        urls += [item.discussion_url, item.url]
    elif item.source is Source.REDDIT:
        urls.append(item.discussion_url or item.url)
        if item.url != item.discussion_url:
            urls.append(item.url)
    else:
        urls.append(item.url)

    ordered: list[str] = []
    for url in urls:
        if url and url not in ordered:
            ordered.append(url)
    return ordered


def handle_click(
    store: ItemStore,
    source: Source,
    source_id: str,
    click_type: ClickType,
    *,
    opener: Callable[[str], object] = webbrowser.open,
    tagger: Callable[[Item], object] | None = None,
) -> tuple[Item | None, threading.Thread | None]:
    """Record a click and open its links. Article clicks also tag the item.

    Tagging runs on a background thread so opening links never waits on the
    LLM. Returns the updated item and the tagging thread, if one started.
    """
    item = record_click(store, source, source_id, click_type)
    if item is None:
        return None, None

    for url in urls_to_open(item, click_type):
        opener(url)

    thread = None
    if click_type is ClickType.ARTICLE and tagger is not None and item.url:
        thread = threading.Thread(
            target=_run_tagger, args=(tagger, item), name="readgood-tagger", daemon=True
        )
        thread.start()
    return item, thread


def _run_tagger(tagger: Callable[[Item], object], item: Item) -> None:
    try:
        tagger(item)
    except Exception:
        logger.exception("Tagging failed for %s:%s", item.source.value, item.source_id)
