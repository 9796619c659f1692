"""HTTP transport for provider clients.

Thin urllib wrapper that turns transport failures into the provider error
taxonomy, plus a retry helper for the transient ones. No external
dependencies beyond the standard library.
"""

from __future__ import annotations

import http.client
import json
import socket
import time
import urllib.error
import urllib.parse
import urllib.request
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from loguru import logger

from .exceptions import NotFound, ProviderError, RateLimited, Unavailable

T = TypeVar("T")

USER_AGENT = "navfolio/0.1"

# (url, timeout) -> parsed JSON body
JsonFetcher = Callable[[str, float], Any]


def get_json(url: str, timeout: float = 15) -> Any:
    """GET *url* and decode the JSON body, classifying every failure."""
    headers = {"Accept": "application/json", "User-Agent": USER_AGENT}
    req = urllib.request.Request(url=url, method="GET", headers=headers)
    logger.debug(f"GET {url}")
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            raw = resp.read()
    except urllib.error.HTTPError as e:
        body = e.read().decode("utf-8", errors="ignore") if hasattr(e, "read") else ""
        raise classify_status(e.code, f"{url}: {body[:200] or e.reason}") from e
    except urllib.error.URLError as e:
        raise Unavailable(f"Request to {url} failed: {e.reason}") from e
    except (TimeoutError, socket.timeout) as e:
        raise Unavailable(f"Request to {url} timed out after {timeout}s") from e
    except (http.client.HTTPException, OSError) as e:
        # Dropped connections, resets and truncated bodies
        raise Unavailable(f"Request to {url} failed: {e!r}") from e

    if not raw or not raw.strip():
        raise Unavailable(f"Empty response from {url}")
    try:
        return json.loads(raw.decode("utf-8", errors="ignore"))
    except json.JSONDecodeError as e:
        raise Unavailable(f"Unparseable response from {url}: {e}") from e


def classify_status(status: int, detail: str) -> ProviderError:
    """Map an HTTP error status to a provider error."""
    if status == 404:
        return NotFound(f"HTTP 404 {detail}")
    if status == 429:
        return RateLimited(f"HTTP 429 {detail}")
    return Unavailable(f"HTTP {status} {detail}")


def build_url(base_url: str, path: str, params: dict[str, Any] | None = None) -> str:
    url = f"{base_url.rstrip('/')}/{path.lstrip('/')}"
    if params:
        url = f"{url}?{urllib.parse.urlencode(params)}"
    return url


@dataclass(frozen=True)
class RetryPolicy:
    """How often to retry a retryable provider error.

    Attributes:
        retries: Extra attempts after the first (total runs = 1 + retries).
        delay: Seconds to wait before the first retry; grows linearly.
    """

    retries: int = 2
    delay: float = 0.5

    def run(self, operation: Callable[[], T], sleep: Callable[[float], None] = time.sleep) -> T:
        attempt = 0
        while True:
            try:
                return operation()
            except ProviderError as e:
                if not e.retryable or attempt >= self.retries:
                    raise
                attempt += 1
                logger.debug(f"Attempt {attempt}/{self.retries} failed: {e}. Retrying...")
                sleep(self.delay * attempt)


NO_RETRY = RetryPolicy(retries=0, delay=0)
