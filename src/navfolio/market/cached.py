"""
Cache-backed PriceProvider decorator.

Every call is routed through ``Cache.get_or_fetch`` with a key of the form
``{provider}/{kind}/{identifier}[/{range}]`` and a TTL picked by data kind.
Identifiers are validated (and normalized) before the cache is consulted, so
``aapl`` and ``AAPL`` share an entry and malformed input never reaches the
network.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from navfolio.core.cache import Cache, DataKind, TtlPolicy, decode_json

from .base import PriceProvider
from .models import HistoryRange, Metadata, Quote, Series


def _codec(model: type) -> tuple[Callable[[Any], bytes], Callable[[bytes], Any]]:
    def encode(value: Any) -> bytes:
        return json.dumps(value.to_dict()).encode("utf-8")

    def decode(payload: bytes) -> Any:
        return model.from_dict(decode_json(payload))

    return encode, decode


_QUOTE_CODEC = _codec(Quote)
_SERIES_CODEC = _codec(Series)
_METADATA_CODEC = _codec(Metadata)


class CachedProvider(PriceProvider):
    """Wraps a provider so each request is served from the cache when fresh.

    Args:
        provider: The provider doing the real network calls.
        cache: Shared cache; pass one instance to every wrapper in a run.
        ttl_policy: TTL per data kind.
        force_refresh: Skip freshness checks for every lookup (``--refresh``).
    """

    def __init__(
        self,
        provider: PriceProvider,
        cache: Cache,
        ttl_policy: TtlPolicy | None = None,
        force_refresh: bool = False,
        clock: Callable[[], datetime] | None = None,
    ):
        super().__init__(provider.base_url, fetcher=provider.fetcher, retry=provider.retry, timeout=provider.timeout)
        self.provider = provider
        self.cache = cache
        self.ttl_policy = ttl_policy or TtlPolicy()
        self.force_refresh = force_refresh
        self._clock = clock or (lambda: datetime.now(UTC))
        self.name = provider.name
        self.publishes_daily_at = provider.publishes_daily_at

    def validate_identifier(self, identifier: str) -> str:
        return self.provider.validate_identifier(identifier)

    def fetch_quote(self, identifier: str) -> Quote:
        ident = self.validate_identifier(identifier)
        return self._cached(DataKind.QUOTE, ident, lambda: self.provider.fetch_quote(ident), _QUOTE_CODEC)

    def fetch_history(self, identifier: str, history_range: HistoryRange) -> Series:
        ident = self.validate_identifier(identifier)
        return self._cached(
            DataKind.HISTORY,
            f"{ident}/{history_range.value}",
            lambda: self.provider.fetch_history(ident, history_range),
            _SERIES_CODEC,
        )

    def fetch_metadata(self, identifier: str) -> Metadata:
        ident = self.validate_identifier(identifier)
        return self._cached(DataKind.METADATA, ident, lambda: self.provider.fetch_metadata(ident), _METADATA_CODEC)

    def fetch_rate(self, from_currency: str, to_currency: str) -> Quote:
        """Cached currency rate; only for providers that implement ``fetch_rate``."""
        fetch_rate = getattr(self.provider, "fetch_rate", None)
        if fetch_rate is None:
            raise NotImplementedError(f"Provider '{self.name}' does not serve currency rates")
        return self._cached(
            DataKind.FX,
            f"{from_currency}{to_currency}",
            lambda: fetch_rate(from_currency, to_currency),
            _QUOTE_CODEC,
        )

    def ttl_for(self, kind: DataKind) -> timedelta:
        """TTL for *kind*, capped at the last daily publication for once-a-day sources."""
        ttl = self.ttl_policy.ttl_for(kind)
        if self.publishes_daily_at is None or kind not in (DataKind.QUOTE, DataKind.HISTORY):
            return ttl

        now = self._clock()
        published = datetime.combine(now.date(), self.publishes_daily_at, tzinfo=UTC)
        if published > now:
            published -= timedelta(days=1)
        # Anything fetched before the latest publication is stale.
        return min(ttl, now - published)

    def _cached(self, kind: DataKind, suffix: str, fetch_fn, codec):
        encode, decode = codec
        return self.cache.get_or_fetch(
            f"{self.name}/{kind.value}/{suffix}",
            self.ttl_for(kind),
            fetch_fn,
            force_refresh=self.force_refresh,
            encode=encode,
            decode=decode,
        )
