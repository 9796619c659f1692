"""Currency conversion with one rate lookup per pair per run."""

from __future__ import annotations

import threading

from loguru import logger

from navfolio.core.exceptions import ProviderError


class CurrencyConverter:
    """Converts amounts between currencies using a rate source.

    The rate source is anything with ``fetch_rate(from, to) -> Quote``,
    normally a ``CachedProvider`` around ``YahooProvider``. Each pair is
    resolved at most once per converter, failures included, so every
    instrument in one valuation sees the same rate.
    """

    def __init__(self, rate_source):
        self.rate_source = rate_source
        self._rates: dict[tuple[str, str], float | ProviderError] = {}
        self._locks: dict[tuple[str, str], threading.Lock] = {}
        self._guard = threading.Lock()

    def rate(self, from_currency: str, to_currency: str) -> float:
        if from_currency == to_currency:
            return 1.0
        pair = (from_currency, to_currency)

        with self._guard:
            lock = self._locks.setdefault(pair, threading.Lock())

        with lock:
            if pair not in self._rates:
                try:
                    self._rates[pair] = self.rate_source.fetch_rate(from_currency, to_currency).price
                    logger.debug(f"Rate {from_currency}/{to_currency} = {self._rates[pair]}")
                except ProviderError as e:
                    self._rates[pair] = e
            resolved = self._rates[pair]

        if isinstance(resolved, ProviderError):
            raise resolved
        return resolved

    def convert(self, amount: float, from_currency: str, to_currency: str) -> float:
        return amount * self.rate(from_currency, to_currency)
