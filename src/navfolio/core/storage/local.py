"""
Local filesystem cache store.

One JSON envelope per key under ``base_path``. Writes go to a temp file in
the same directory followed by ``os.replace``, so a crash or interrupt
never leaves a half-written entry behind.
"""

import base64
import binascii
import hashlib
import json
import os
import re
import tempfile
from datetime import datetime
from pathlib import Path

from loguru import logger

from ..exceptions import CacheCorrupt
from .base import CacheRecord, CacheStore

ENVELOPE_FORMAT = 1

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._=-]+")


class DiskStore(CacheStore):
    """Filesystem-backed store, one file per key."""

    def __init__(self, base_path: str = "~/.navfolio/cache"):
        self.base_path = Path(base_path).expanduser().resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _get_full_path(self, key: str) -> Path:
        """Map a cache key to a file name that is safe on every platform.

        The readable prefix is for humans poking at the directory; the hash
        suffix keeps distinct keys from colliding after sanitizing.
        """
        if not key:
            raise ValueError("Cache key cannot be empty.")
        digest = hashlib.sha1(key.encode("utf-8")).hexdigest()[:16]
        readable = _UNSAFE_CHARS.sub("_", key).strip("_")[:80]
        return self.base_path / f"{readable}-{digest}.json"

    def get(self, key: str) -> CacheRecord | None:
        path = self._get_full_path(key)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning(f"Cannot read cache entry for '{key}': {e}")
            return None

        try:
            return self._decode(key, raw)
        except CacheCorrupt as e:
            logger.warning(f"Ignoring unreadable cache entry for '{key}': {e}")
            return None

    def put(self, key: str, payload: bytes, fetched_at: datetime) -> None:
        path = self._get_full_path(key)
        envelope = {
            "format": ENVELOPE_FORMAT,
            "key": key,
            "fetched_at": fetched_at.isoformat(),
            "payload": base64.b64encode(payload).decode("ascii"),
        }
        self._atomic_write(path, json.dumps(envelope).encode("utf-8"))
        logger.debug(f"Cache PUT {key}")

    def clear(self) -> int:
        removed = 0
        for path in self.base_path.glob("*.json"):
            try:
                path.unlink()
                removed += 1
            except FileNotFoundError:
                continue
        return removed

    @staticmethod
    def _decode(key: str, raw: bytes) -> CacheRecord:
        try:
            envelope = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise CacheCorrupt(f"invalid JSON envelope: {e}") from e
        if not isinstance(envelope, dict):
            raise CacheCorrupt("envelope is not an object")
        if envelope.get("format") != ENVELOPE_FORMAT:
            raise CacheCorrupt(f"unknown envelope format {envelope.get('format')!r}")
        if envelope.get("key") != key:
            raise CacheCorrupt(f"entry belongs to key {envelope.get('key')!r}")
        try:
            fetched_at = datetime.fromisoformat(envelope["fetched_at"])
            payload = base64.b64decode(envelope["payload"], validate=True)
        except (KeyError, TypeError, ValueError, binascii.Error) as e:
            raise CacheCorrupt(f"malformed envelope fields: {e}") from e
        if fetched_at.tzinfo is None:
            raise CacheCorrupt("fetched_at has no timezone")
        return CacheRecord(key=key, payload=payload, fetched_at=fetched_at)

    @staticmethod
    def _atomic_write(path: Path, data: bytes) -> None:
        """Atomic write: temp file + rename so a kill can't corrupt."""
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=str(path.parent), suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp, path)
        except BaseException:
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise
