"""In-memory cache store for tests and one-shot runs."""

import threading
from datetime import datetime

from .base import CacheRecord, CacheStore


class MemoryStore(CacheStore):
    """Dict-backed store. Thread-safe; contents vanish with the process."""

    def __init__(self) -> None:
        self._records: dict[str, CacheRecord] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> CacheRecord | None:
        with self._lock:
            return self._records.get(key)

    def put(self, key: str, payload: bytes, fetched_at: datetime) -> None:
        with self._lock:
            self._records[key] = CacheRecord(key=key, payload=bytes(payload), fetched_at=fetched_at)

    def clear(self) -> int:
        with self._lock:
            removed = len(self._records)
            self._records.clear()
            return removed

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
