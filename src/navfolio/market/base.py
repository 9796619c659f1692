"""
PriceProvider interface and shared plumbing.

Any data source (Yahoo Finance, AMFI, ...) implements this interface so the
valuation and analytics engines can treat them uniformly. Providers are
stateless apart from their transport settings; caching is layered on top by
``navfolio.market.cached.CachedProvider``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import UTC, datetime, time
from typing import Any

from navfolio.core.exceptions import SchemaChanged
from navfolio.core.http import JsonFetcher, RetryPolicy, get_json

from .models import HistoryRange, Metadata, Quote, Series


class PriceProvider(ABC):
    """Abstract base class for price/metadata providers."""

    name: str = "base"

    publishes_daily_at: time | None = None
    """UTC time of day new prices appear, for sources that publish once a day."""

    def __init__(
        self,
        base_url: str,
        fetcher: JsonFetcher = get_json,
        retry: RetryPolicy | None = None,
        timeout: float = 15,
    ):
        self.base_url = base_url.rstrip("/")
        self.fetcher = fetcher
        self.retry = retry or RetryPolicy()
        self.timeout = timeout

    @abstractmethod
    def validate_identifier(self, identifier: str) -> str:
        """Return the normalized identifier or raise InvalidIdentifier."""

    @abstractmethod
    def fetch_quote(self, identifier: str) -> Quote:
        """Latest price for *identifier*."""

    @abstractmethod
    def fetch_history(self, identifier: str, history_range: HistoryRange) -> Series:
        """Ascending price history covering *history_range*.

        The series includes the nearest point at or before the start of the
        range when the source has one, so backward fill can anchor on it.
        """

    @abstractmethod
    def fetch_metadata(self, identifier: str) -> Metadata:
        """Category, expense ratio and display name for *identifier*."""

    def _get(self, url: str) -> Any:
        return self.retry.run(lambda: self.fetcher(url, self.timeout))


def require(container: Any, key: str | int, context: str) -> Any:
    """Index into a decoded response, raising SchemaChanged when the shape is off."""
    try:
        value = container[key]
    except (KeyError, IndexError, TypeError) as e:
        raise SchemaChanged(f"{context}: missing '{key}' in response") from e
    if value is None:
        raise SchemaChanged(f"{context}: '{key}' is null in response")
    return value


def as_float(value: Any, context: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise SchemaChanged(f"{context}: expected a number, got {value!r}") from e


def require_object(container: Any, key: str | int, context: str) -> dict[str, Any]:
    """Like ``require`` but the value must also be a JSON object."""
    value = require(container, key, context)
    if not isinstance(value, dict):
        raise SchemaChanged(f"{context}: expected an object at '{key}', got {type(value).__name__}")
    return value


def as_timestamp(value: Any, context: str) -> datetime:
    """Epoch seconds to an aware UTC datetime."""
    try:
        return datetime.fromtimestamp(as_float(value, context), UTC)
    except (OverflowError, OSError, ValueError) as e:
        raise SchemaChanged(f"{context}: timestamp out of range: {value!r}") from e


def optional_text(value: Any, context: str) -> str | None:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise SchemaChanged(f"{context}: expected text, got {value!r}")
    return value
