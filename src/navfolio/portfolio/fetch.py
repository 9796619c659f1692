"""
Bounded concurrent fetching with a global deadline.

``FetchPool.run`` takes a mapping of key -> zero-arg callable, runs them on a
thread pool and returns an ``Outcome`` per key in the mapping's order. Library
errors (``NavfolioError``) become failed outcomes; anything else is a bug and
propagates. The deadline is fixed when the pool is created and shared by every
``run``, so a command making several batches is bounded as a whole. Work still
running at the deadline is reported as ``Unavailable`` and queued work is
cancelled; batches started after it fail straight away.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Hashable, Mapping
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Any

from loguru import logger

from navfolio.core.exceptions import NavfolioError, Unavailable


@dataclass(frozen=True)
class Outcome:
    value: Any = None
    error: NavfolioError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class FetchPool:
    """Thread pool runner for independent provider calls.

    Args:
        max_workers: Upper bound on concurrent calls.
        timeout: Seconds, from creation, that all batches together may take;
            None waits forever.
        clock: Monotonic time source.
    """

    def __init__(
        self,
        max_workers: int = 8,
        timeout: float | None = 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self.max_workers = max_workers
        self.timeout = timeout
        self._clock = clock
        self.deadline = clock() + timeout if timeout is not None else None

    def remaining(self) -> float | None:
        """Seconds left before the deadline, never negative; None without one."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - self._clock())

    def run(self, tasks: Mapping[Hashable, Callable[[], Any]]) -> dict[Hashable, Outcome]:
        if not tasks:
            return {}

        remaining = self.remaining()
        if remaining == 0:
            logger.warning(f"Fetch deadline of {self.timeout}s already passed; skipping {len(tasks)} fetch(es)")
            return {key: Outcome(error=Unavailable(f"{key}: timed out after {self.timeout}s")) for key in tasks}

        executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="navfolio-fetch")
        futures = {key: executor.submit(fn) for key, fn in tasks.items()}
        try:
            done, pending = wait(futures.values(), timeout=remaining)
        except KeyboardInterrupt:
            executor.shutdown(wait=False, cancel_futures=True)
            raise
        if pending:
            logger.warning(f"{len(pending)} fetch(es) unfinished after {self.timeout}s; giving up on them")
        executor.shutdown(wait=False, cancel_futures=True)

        results: dict[Hashable, Outcome] = {}
        for key, future in futures.items():
            if future not in done:
                future.cancel()
                results[key] = Outcome(error=Unavailable(f"{key}: timed out after {self.timeout}s"))
                continue
            error = future.exception()
            if error is None:
                results[key] = Outcome(value=future.result())
            elif isinstance(error, NavfolioError):
                results[key] = Outcome(error=error)
            else:
                raise error
        return results
