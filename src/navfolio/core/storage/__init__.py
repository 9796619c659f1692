"""
Cache stores for navfolio.

Provides a pluggable key -> bytes store interface with a filesystem backend
(default) and an in-memory backend for tests.
"""

from .base import CacheRecord, CacheStore
from .local import DiskStore
from .memory import MemoryStore

__all__ = [
    "CacheRecord",
    "CacheStore",
    "DiskStore",
    "MemoryStore",
]
