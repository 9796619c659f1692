"""
Abstract base class for cache stores.

A store is a dumb key -> bytes surface with a fetch timestamp per entry.
Freshness, codecs and request coalescing live in ``navfolio.core.cache``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class CacheRecord:
    """A persisted cache entry."""

    key: str
    payload: bytes
    fetched_at: datetime


class CacheStore(ABC):
    """Abstract base class for cache stores.

    Implementations must make ``put`` atomic per key: a reader sees either
    the previous record or the new one, never a partial write.
    """

    @abstractmethod
    def get(self, key: str) -> CacheRecord | None:
        """Return the record for *key*, or None if missing or unreadable."""

    @abstractmethod
    def put(self, key: str, payload: bytes, fetched_at: datetime) -> None:
        """Store *payload* under *key*, replacing any previous record."""

    @abstractmethod
    def clear(self) -> int:
        """Remove every record. Returns the number of records removed."""
