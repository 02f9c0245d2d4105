"""Reddit source adapter — fetches hot posts via the OAuth API."""

from __future__ import annotations

import logging
import time

import httpx

from readgood.ingestion.adapter import (
    AuthReason,
    FetchError,
    FetchErrorKind,
    FetchResult,
    SourceAdapter,
)
from readgood.ingestion.normalize import Item, Source, make_item

logger = logging.getLogger(__name__)

_REDDIT_TOKEN_URL = "https://www.reddit.com/api/v1/access_token"
_REDDIT_HOT_URL = "https://oauth.reddit.com/r/{}/hot"
_REDDIT_DISCUSSION_BASE = "https://old.reddit.com"
_POSTS_PER_SUBREDDIT = 10
_TOKEN_EXPIRY_MARGIN = 60  # seconds


class RedditAdapter(SourceAdapter):
    """Adapter for Reddit subreddit hot posts (application-only OAuth)."""

    def __init__(self, max_items: int = 15, timeout: float = 15.0) -> None:
        super().__init__(max_items=max_items, timeout=timeout)
        self._subreddits: list[str] = []
        self._client_id = ""
        self._client_secret = ""
        self._user_agent = "ReadGood/1.0"
        self._access_token: str | None = None
        self._token_expires_at = 0.0

    @property
    def source(self) -> Source:
        return Source.REDDIT

    def configure(self, config: dict) -> None:
        super().configure(config)
        self._subreddits = list(config.get("subreddits", []))
        self._client_id = config.get("client_id", "")
        self._client_secret = config.get("client_secret", "")
        self._user_agent = config.get("user_agent", self._user_agent)
        self._access_token = None
        self._token_expires_at = 0.0

    def fetch(self) -> FetchResult:
        auth_error = self._authenticate()
        if auth_error is not None:
            return FetchResult(error=auth_error)

        all_items: list[Item] = []
        last_error: FetchError | None = None
        succeeded = 0
        for subreddit in self._subreddits:
            items, error = self._fetch_subreddit(subreddit)
            if error is not None:
                last_error = error
                continue
            succeeded += 1
            all_items.extend(items)

        # A partially successful fetch still counts as a success.
        if self._subreddits and succeeded == 0 and last_error is not None:
            return FetchResult(error=last_error)

        all_items.sort(key=lambda i: i.score, reverse=True)
        all_items = all_items[: self._max_items]
        logger.info(
            "Fetched %d items from Reddit (%d/%d subreddits)",
            len(all_items), succeeded, len(self._subreddits),
        )
        return FetchResult.success(all_items)

    def _authenticate(self) -> FetchError | None:
        """Obtain or reuse an access token. Returns an error on failure."""
        if self._access_token and time.monotonic() < self._token_expires_at:
            return None

        if not self._client_id or not self._client_secret:
            return FetchError(
                kind=FetchErrorKind.AUTH_FAILURE,
                message="Reddit API credentials not configured",
                auth_reason=AuthReason.MISSING_CREDENTIALS,
            )

        try:
            resp = httpx.post(
                _REDDIT_TOKEN_URL,
                data={"grant_type": "client_credentials"},
                auth=(self._client_id, self._client_secret),
                headers={"User-Agent": self._user_agent},
                timeout=self._timeout,
            )
        except httpx.TimeoutException as exc:
            return FetchError(kind=FetchErrorKind.TIMEOUT, message=str(exc))
        except httpx.HTTPError as exc:
            logger.warning("Reddit token request failed: %s", exc)
            return FetchError(kind=FetchErrorKind.NETWORK_FAILURE, message=str(exc))

        if resp.status_code in (401, 403):
            self._access_token = None
            logger.warning("Reddit rejected credentials (HTTP %d)", resp.status_code)
            return FetchError(
                kind=FetchErrorKind.AUTH_FAILURE,
                message=f"Reddit authentication failed (HTTP {resp.status_code})",
                auth_reason=AuthReason.INVALID_CREDENTIALS,
            )
        if resp.status_code != 200:
            return FetchError(
                kind=FetchErrorKind.NETWORK_FAILURE,
                message=f"Reddit token endpoint returned HTTP {resp.status_code}",
            )

        try:
            data = resp.json()
            token = data["access_token"]
            expires_in = int(data.get("expires_in", 3600))
        except (ValueError, KeyError, TypeError) as exc:
            return FetchError(kind=FetchErrorKind.PARSE_FAILURE, message=f"Bad token response: {exc}")

        self._access_token = token
        self._token_expires_at = time.monotonic() + max(expires_in - _TOKEN_EXPIRY_MARGIN, 0)
        logger.info("Reddit authentication successful")
        return None

    def _fetch_subreddit(self, subreddit: str) -> tuple[list[Item], FetchError | None]:
        try:
            resp = httpx.get(
                _REDDIT_HOT_URL.format(subreddit),
                params={"limit": _POSTS_PER_SUBREDDIT},
                headers={
                    "Authorization": f"Bearer {self._access_token}",
                    "User-Agent": self._user_agent,
                },
                timeout=self._timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except httpx.TimeoutException as exc:
            logger.warning("Timed out fetching Reddit r/%s", subreddit)
            return [], FetchError(kind=FetchErrorKind.TIMEOUT, message=str(exc))
        except httpx.HTTPError as exc:
            logger.warning("Failed to fetch Reddit r/%s: %s", subreddit, exc)
            return [], FetchError(kind=FetchErrorKind.NETWORK_FAILURE, message=str(exc))
        except ValueError as exc:
            logger.warning("Invalid JSON from Reddit r/%s", subreddit)
            return [], FetchError(kind=FetchErrorKind.PARSE_FAILURE, message=str(exc))

        listing = data.get("data") if isinstance(data, dict) else None
        children = listing.get("children") if isinstance(listing, dict) else None
        if not isinstance(children, list):
            logger.warning("Unexpected listing shape from Reddit r/%s", subreddit)
            return [], FetchError(
                kind=FetchErrorKind.PARSE_FAILURE,
                message=f"r/{subreddit} listing is not a JSON object with children",
            )

        items: list[Item] = []
        for post_wrapper in children:
            post = post_wrapper.get("data") if isinstance(post_wrapper, dict) else None
            if not isinstance(post, dict):
                continue
            post_id = post.get("id")
            title = post.get("title")
            if not post_id or not isinstance(title, str) or not title.strip():
                continue

            discussion_url = f"{_REDDIT_DISCUSSION_BASE}{post.get('permalink', '')}"
            article_url = discussion_url if post.get("is_self") else (post.get("url") or discussion_url)
            try:
                items.append(
                    make_item(
                        Source.REDDIT,
                        post_id,
                        title,
                        url=article_url,
                        discussion_url=discussion_url,
                        score=post.get("score", 0),
                        reply_count=post.get("num_comments", 0),
                        author=post.get("author"),
                    )
                )
            except (ValueError, TypeError):
                logger.warning("Skipping malformed Reddit post %s", post_id)

        return items, None
