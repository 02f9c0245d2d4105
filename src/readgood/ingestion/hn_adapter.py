"""Hacker News source adapter — fetches the current top stories."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

import httpx

from readgood.ingestion.adapter import FetchErrorKind, FetchResult, SourceAdapter
from readgood.ingestion.normalize import Item, Source, make_item

logger = logging.getLogger(__name__)

_HN_TOP_URL = "https://hacker-news.firebaseio.com/v0/topstories.json"
_HN_ITEM_URL = "https://hacker-news.firebaseio.com/v0/item/{}.json"
_HN_DISCUSSION_URL = "https://news.ycombinator.com/item?id={}"
_DETAIL_WORKERS = 8


class HNAdapter(SourceAdapter):
    """Adapter for Hacker News top stories, highest score first."""

    @property
    def source(self) -> Source:
        return Source.HN

    def fetch(self) -> FetchResult:
        try:
            resp = httpx.get(_HN_TOP_URL, timeout=self._timeout)
            resp.raise_for_status()
            story_ids = resp.json()
        except httpx.TimeoutException as exc:
            logger.warning("Timed out fetching HN top stories: %s", exc)
            return FetchResult.failure(FetchErrorKind.TIMEOUT, str(exc))
        except httpx.HTTPError as exc:
            logger.warning("Failed to fetch HN top stories: %s", exc)
            return FetchResult.failure(FetchErrorKind.NETWORK_FAILURE, str(exc))
        except ValueError as exc:
            logger.warning("Invalid HN top stories payload: %s", exc)
            return FetchResult.failure(FetchErrorKind.PARSE_FAILURE, str(exc))

        if not isinstance(story_ids, list):
            return FetchResult.failure(
                FetchErrorKind.PARSE_FAILURE, "top stories payload is not a list"
            )

        # Item details are fetched concurrently so the whole list fits inside
        # one source deadline. Each request is bounded by its own timeout.
        wanted = story_ids[: self._max_items]
        with ThreadPoolExecutor(
            max_workers=max(1, min(_DETAIL_WORKERS, len(wanted))),
            thread_name_prefix="readgood-hn",
        ) as pool:
            fetched = list(pool.map(self._fetch_story, wanted))
        items: list[Item] = [item for item in fetched if item is not None]

        items.sort(key=lambda i: i.score, reverse=True)
        logger.info("Fetched %d items from Hacker News", len(items))
        return FetchResult.success(items)

    def _fetch_story(self, story_id: int) -> Item | None:
        try:
            resp = httpx.get(_HN_ITEM_URL.format(story_id), timeout=self._timeout)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError):
            logger.warning("Failed to fetch HN item %s", story_id)
            return None

        if not isinstance(data, dict) or data.get("type", "story") != "story":
            return None
        title = data.get("title")
        if not isinstance(title, str) or not title.strip():
            return None

        discussion_url = _HN_DISCUSSION_URL.format(story_id)
        try:
            return make_item(
                Source.HN,
                story_id,
                title,
                # Text posts have no external link; the discussion is the article.
                url=data.get("url") or discussion_url,
                discussion_url=discussion_url,
                score=data.get("score", 0),
                reply_count=data.get("descendants", 0),
                author=data.get("by"),
            )
        except (ValueError, TypeError):
            logger.warning("Skipping malformed HN item %s", story_id)
            return None
