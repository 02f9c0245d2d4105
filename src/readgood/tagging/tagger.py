"""Topic tagging — LLM-suggested tags for clicked items."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import anthropic

from readgood.ingestion.normalize import Item, normalize_tags
from readgood.storage.item_store import ItemStore

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You categorize links for a personal reading list. "
    "Reply with tags only, as a single comma-separated line."
)

_USER_PROMPT_TEMPLATE = """\
Based on this article title and URL, suggest 4-6 relevant tags that would help categorize and find this content later.

Title: "{title}"
URL: {url}

Please provide tags that are:
- Descriptive and specific
- Useful for categorization
- Common enough to group similar articles
- A mix of topics, technologies, and themes
- NOT synonyms with one another

Return only the tags as a comma-separated list, no explanations."""

_PREAMBLE_MARKERS = ("here are", "based on", "suggested tags")
_MAX_LINE_LENGTH = 200
_MAX_TAG_LENGTH = 30
_FALLBACK_WORDS = 6


@dataclass(frozen=True)
class TagResult:
    """Result of a tagging request."""

    tags: list[str]
    error: dict | None = None


def format_user_prompt(title: str, url: str | None) -> str:
    return _USER_PROMPT_TEMPLATE.format(title=title, url=url or "")


def parse_tags(raw: str, max_tags: int = 8) -> list[str]:
    """Extract tags from a free-form LLM reply.

    Prefers the first comma-separated line holding at least two usable tags,
    then falls back to individual words. Raises ValueError if nothing usable
    is found.
    """
    text = raw.replace("```", "").replace("`", "").strip()
    if not text:
        raise ValueError("Empty response")

    for line in text.splitlines():
        line = line.strip()
        lowered = line.lower()
        if not line or len(line) > _MAX_LINE_LENGTH:
            continue
        if any(marker in lowered for marker in _PREAMBLE_MARKERS):
            continue
        if "," not in line:
            continue
        candidates = [
            tag for tag in normalize_tags(line.split(","))
            if len(tag) < _MAX_TAG_LENGTH and "." not in tag
        ]
        if len(candidates) >= 2:
            return candidates[:max_tags]

    words = [
        word for word in normalize_tags(text.lower().split())
        if 2 < len(word) < 20 and "." not in word
    ]
    if words:
        return words[: min(_FALLBACK_WORDS, max_tags)]
    raise ValueError("No valid tags found in response")


def generate_tags(
    item: Item,
    *,
    api_key: str,
    model: str,
    max_tags: int = 8,
    max_retries: int = 2,
    timeout: int = 15,
) -> TagResult:
    """Ask the LLM for topic tags for one item. Never raises."""
    user_prompt = format_user_prompt(item.title, item.url)

    try:
        raw_response = _call_llm(
            api_key=api_key,
            model=model,
            system_prompt=SYSTEM_PROMPT,
            user_prompt=user_prompt,
            max_retries=max_retries,
            timeout=timeout,
        )
    except Exception as exc:
        logger.exception("LLM API call failed for item %s:%s", item.source.value, item.source_id)
        return TagResult(tags=[], error={"code": "api_error", "message": str(exc)})

    try:
        tags = parse_tags(raw_response, max_tags=max_tags)
    except ValueError as exc:
        logger.warning(
            "Could not parse tags for item %s:%s: %s", item.source.value, item.source_id, exc
        )
        return TagResult(tags=[], error={"code": "parse_error", "message": str(exc)})

    logger.info("Generated %d tags for %s:%s", len(tags), item.source.value, item.source_id)
    return TagResult(tags=tags)


def tag_item(
    item: Item,
    store: ItemStore,
    *,
    api_key: str,
    model: str,
    max_tags: int = 8,
    max_retries: int = 2,
    timeout: int = 15,
) -> TagResult:
    """Generate tags for an item and attach them in the store."""
    result = generate_tags(
        item,
        api_key=api_key,
        model=model,
        max_tags=max_tags,
        max_retries=max_retries,
        timeout=timeout,
    )
    if result.tags:
        apply_tags(store, item, result.tags)
    return result


def apply_tags(store: ItemStore, item: Item, tags: list[str]) -> Item | None:
    """Persist tags on an item. Returns the updated item, or None if unknown."""
    updated = store.add_tags(item.source, item.source_id, tags)
    if updated is None:
        logger.warning("Cannot tag unknown item %s:%s", item.source.value, item.source_id)
    return updated


def _call_llm(
    *,
    api_key: str,
    model: str,
    system_prompt: str,
    user_prompt: str,
    max_retries: int,
    timeout: int,
) -> str:
    """Call the Anthropic API and return the text response."""
    client = anthropic.Anthropic(
        api_key=api_key,
        max_retries=max_retries,
        timeout=timeout,
    )
    message = client.messages.create(
        model=model,
        max_tokens=128,
        temperature=0.0,
        system=system_prompt,
        messages=[{"role": "user", "content": user_prompt}],
    )
    return message.content[0].text
