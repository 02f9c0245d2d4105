"""archive.ph link builder."""

from __future__ import annotations

from urllib.parse import quote

_ARCHIVE_BASE_URL = "https://archive.ph"
_ARCHIVE_SUBMIT_URL = "https://dgy3yyibpm3nn7.archive.ph/?url={}"


def archive_url(url: str | None) -> str:
    """Return the archive.ph submission link for ``url``.

    An empty URL yields the archive.ph home page.
    """
    if not url or not url.strip():
        return _ARCHIVE_BASE_URL
    return _ARCHIVE_SUBMIT_URL.format(quote(url.strip(), safe=":/"))
