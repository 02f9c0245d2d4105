"""Pinboard source adapter — scrapes the public popular bookmarks page."""

from __future__ import annotations

import logging

import httpx
from bs4 import BeautifulSoup

from readgood.ingestion.adapter import FetchErrorKind, FetchResult, SourceAdapter
from readgood.ingestion.normalize import Item, Source, make_item

logger = logging.getLogger(__name__)

_PINBOARD_POPULAR_URL = "https://pinboard.in/popular/"


def _parse_count(text: str | None) -> int:
    digits = "".join(ch for ch in (text or "") if ch.isdigit())
    return int(digits) if digits else 0


def parse_popular_page(html: str, max_items: int) -> list[Item] | None:
    """Extract bookmarks from the popular page.

    Returns None when the page carries no bookmark markup at all, which
    means the layout changed rather than that nothing is popular.
    """
    soup = BeautifulSoup(html or "", "html.parser")
    anchors = soup.select("a.bookmark_title")
    if not anchors:
        return None

    items: list[Item] = []
    seen_urls: set[str] = set()
    for anchor in anchors:
        if len(items) >= max_items:
            break
        url = (anchor.get("href") or "").strip()
        title = anchor.get_text(" ", strip=True)
        if not url or not title or url in seen_urls:
            continue
        seen_urls.add(url)

        container = anchor.find_parent("div", class_="bookmark") or anchor.parent
        count_tag = container.select_one("a.bookmark_count") if container else None

        # Positions shift between fetches; the bookmarked URL is the stable id.
        items.append(
            make_item(
                Source.PINBOARD,
                url,
                title,
                url=url,
                score=_parse_count(count_tag.get_text() if count_tag else None),
            )
        )
    return items


class PinboardAdapter(SourceAdapter):
    """Adapter for pinboard.in/popular."""

    def __init__(self, max_items: int = 12, timeout: float = 15.0) -> None:
        super().__init__(max_items=max_items, timeout=timeout)
        self._user_agent = "ReadGood/1.0"

    @property
    def source(self) -> Source:
        return Source.PINBOARD

    def configure(self, config: dict) -> None:
        super().configure(config)
        self._user_agent = config.get("user_agent", self._user_agent)

    def fetch(self) -> FetchResult:
        try:
            resp = httpx.get(
                _PINBOARD_POPULAR_URL,
                headers={"User-Agent": self._user_agent},
                timeout=self._timeout,
                follow_redirects=True,
            )
            resp.raise_for_status()
        except httpx.TimeoutException as exc:
            logger.warning("Timed out fetching Pinboard popular: %s", exc)
            return FetchResult.failure(FetchErrorKind.TIMEOUT, str(exc))
        except httpx.HTTPError as exc:
            logger.warning("Failed to fetch Pinboard popular: %s", exc)
            return FetchResult.failure(FetchErrorKind.NETWORK_FAILURE, str(exc))

        items = parse_popular_page(resp.text, self._max_items)
        if items is None:
            logger.warning("Pinboard parsing failed - no bookmarks found")
            return FetchResult.failure(
                FetchErrorKind.PARSE_FAILURE, "no bookmark entries found on popular page"
            )

        logger.info("Fetched %d items from Pinboard", len(items))
        return FetchResult.success(items)
