"""
TTL cache with per-key request coalescing.

``Cache.get_or_fetch`` is the only way provider data enters the process:

    cache = Cache(DiskStore(config.get("paths.cache_dir")))
    quote = cache.get_or_fetch("yahoo/quote/AAPL", timedelta(hours=1), lambda: provider.fetch_quote("AAPL"))

Guarantees:
    - a fresh entry is returned without calling ``fetch_fn``
    - a failed fetch leaves the stored entry untouched and re-raises
    - concurrent callers for one key share a single in-flight fetch
    - ``fetched_at`` strictly increases for a key across refreshes
"""

from __future__ import annotations

import json
import threading
from collections.abc import Callable
from concurrent.futures import Future
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import TYPE_CHECKING, Any, TypeVar

from loguru import logger

from .exceptions import CacheCorrupt
from .storage import CacheStore

if TYPE_CHECKING:
    from .config import Config

T = TypeVar("T")

# Entries stamped slightly ahead of the clock (see the fetched_at bump below)
# still count as fresh; anything further ahead is treated as stale.
CLOCK_SKEW = timedelta(seconds=1)


class DataKind(StrEnum):
    QUOTE = "quote"
    HISTORY = "history"
    METADATA = "metadata"
    FX = "fx"


@dataclass
class TtlPolicy:
    """Time-to-live per data kind."""

    ttls: dict[DataKind, timedelta] = field(
        default_factory=lambda: {
            DataKind.QUOTE: timedelta(hours=1),
            DataKind.HISTORY: timedelta(hours=12),
            DataKind.METADATA: timedelta(days=7),
            DataKind.FX: timedelta(hours=6),
        }
    )

    def ttl_for(self, kind: DataKind) -> timedelta:
        return self.ttls[kind]

    @classmethod
    def from_config(cls, config: Config) -> TtlPolicy:
        policy = cls()
        for kind in DataKind:
            policy.ttls[kind] = config.get_duration(f"cache.ttl.{kind.value}", policy.ttls[kind])
        return policy


def encode_json(value: Any) -> bytes:
    return json.dumps(value).encode("utf-8")


def decode_json(payload: bytes) -> Any:
    try:
        return json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise CacheCorrupt(f"payload is not JSON: {e}") from e


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Cache:
    """Store-backed TTL cache. Pass one instance to every provider in a run."""

    def __init__(self, store: CacheStore, clock: Callable[[], datetime] | None = None):
        self.store = store
        self._clock = clock or _utcnow
        self._guard = threading.Lock()
        self._inflight: dict[str, Future] = {}
        self.stats: dict[str, int] = {"hits": 0, "misses": 0, "coalesced": 0, "errors": 0}

    def get_or_fetch(
        self,
        key: str,
        ttl: timedelta,
        fetch_fn: Callable[[], T],
        force_refresh: bool = False,
        encode: Callable[[T], bytes] = encode_json,
        decode: Callable[[bytes], T] = decode_json,
    ) -> T:
        """Return the cached value for *key*, fetching it when stale or forced.

        Args:
            key: Identifies the logical request (provider, kind, id, params).
            ttl: How long a stored entry stays fresh.
            fetch_fn: Zero-arg callable doing the real provider call.
            force_refresh: Skip the freshness check; the result is still stored.
            encode: Value -> bytes for persistence.
            decode: Bytes -> value; raise CacheCorrupt (or any error a malformed payload
                causes: ValueError, KeyError, TypeError, AttributeError)
                to have the entry treated as a miss.
        """
        with self._guard:
            pending = self._inflight.get(key)
            owner = pending is None
            if owner:
                pending = Future()
                self._inflight[key] = pending
            else:
                self.stats["coalesced"] += 1

        if not owner:
            logger.debug(f"Waiting on in-flight fetch for {key}")
            return pending.result()

        try:
            value = self._resolve(key, ttl, fetch_fn, force_refresh, encode, decode)
        except BaseException as e:
            pending.set_exception(e)
            raise
        else:
            pending.set_result(value)
            return value
        finally:
            with self._guard:
                self._inflight.pop(key, None)

    def clear(self) -> int:
        """Drop every stored entry."""
        return self.store.clear()

    def _resolve(self, key, ttl, fetch_fn, force_refresh, encode, decode):
        previous = self.store.get(key)

        if previous is not None and not force_refresh:
            age = self._clock() - previous.fetched_at
            if -CLOCK_SKEW <= age < ttl:
                try:
                    value = decode(previous.payload)
                except (CacheCorrupt, ValueError, KeyError, TypeError, AttributeError) as e:
                    logger.warning(f"Cache entry for {key} could not be decoded, refetching: {e}")
                else:
                    self._count("hits")
                    logger.debug(f"Cache HIT {key} (age {age})")
                    return value

        self._count("misses")
        logger.debug(f"Cache {'REFRESH' if force_refresh else 'MISS'} {key}")
        try:
            value = fetch_fn()
        except Exception as e:
            self._count("errors")
            logger.debug(f"Fetch failed for {key}: {e}")
            raise

        fetched_at = self._clock()
        if previous is not None and fetched_at <= previous.fetched_at:
            fetched_at = previous.fetched_at + timedelta(microseconds=1)
        self.store.put(key, encode(value), fetched_at)
        return value

    def _count(self, name: str) -> None:
        with self._guard:
            self.stats[name] += 1
