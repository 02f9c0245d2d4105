"""Source adapter interface and fetch result types."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum

from readgood.ingestion.normalize import Item, Source


class FetchErrorKind(str, Enum):
    NETWORK_FAILURE = "network_failure"
    AUTH_FAILURE = "auth_failure"
    PARSE_FAILURE = "parse_failure"
    TIMEOUT = "timeout"
    STORAGE_FAILURE = "storage_failure"


class AuthReason(str, Enum):
    MISSING_CREDENTIALS = "missing_credentials"
    INVALID_CREDENTIALS = "invalid_credentials"


@dataclass(frozen=True)
class FetchError:
    """Why a source could not deliver items this cycle."""

    kind: FetchErrorKind
    message: str = ""
    auth_reason: AuthReason | None = None

    def __str__(self) -> str:
        label = self.kind.value
        if self.auth_reason is not None:
            label = f"{label}({self.auth_reason.value})"
        return f"{label}: {self.message}" if self.message else label


@dataclass(frozen=True)
class FetchResult:
    """Outcome of one adapter fetch. Exactly one of items/error is meaningful."""

    items: list[Item] = field(default_factory=list)
    error: FetchError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, items: list[Item]) -> FetchResult:
        return cls(items=list(items))

    @classmethod
    def failure(
        cls,
        kind: FetchErrorKind,
        message: str = "",
        auth_reason: AuthReason | None = None,
    ) -> FetchResult:
        return cls(error=FetchError(kind=kind, message=message, auth_reason=auth_reason))


class SourceAdapter(ABC):
    """Abstract base class for source adapters.

    Every adapter knows how to fetch and parse items from one external
    source. Ordinary failures (network, auth, parse) are returned as a
    FetchResult carrying a FetchError, never raised. Results are truncated to
    the adapter's maximum before returning.
    """

    def __init__(self, max_items: int = 15, timeout: float = 15.0) -> None:
        self._max_items = max_items
        self._timeout = timeout

    @property
    @abstractmethod
    def source(self) -> Source:
        """The source this adapter serves."""

    @property
    def name(self) -> str:
        return self.source.value

    @abstractmethod
    def fetch(self) -> FetchResult:
        """Fetch the current list of items from the source."""

    def configure(self, config: dict) -> None:
        """Accept adapter-specific configuration."""
        self._max_items = config.get("max_items", self._max_items)
        self._timeout = config.get("timeout", self._timeout)
