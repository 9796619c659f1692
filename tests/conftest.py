"""Shared test fixtures for navfolio."""

import os
import tempfile
import threading
from datetime import UTC, date, datetime, timedelta

import pytest

from navfolio.core.exceptions import InvalidIdentifier, NotFound
from navfolio.market.base import PriceProvider
from navfolio.market.models import HistoryRange, Metadata, Quote, Series

NOW = datetime(2024, 6, 3, 12, 0, tzinfo=UTC)


class FakeClock:
    """Controllable clock for cache and TTL tests."""

    def __init__(self, start: datetime = NOW):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeProvider(PriceProvider):
    """In-memory provider that counts calls per method.

    ``errors`` maps an identifier to the exception every call for it raises.
    """

    name = "fake"

    def __init__(self, quotes=None, histories=None, metadata=None, rates=None, errors=None):
        super().__init__("fake://")
        self.quotes: dict[str, Quote] = quotes or {}
        self.histories: dict[str, Series] = histories or {}
        self.metadata: dict[str, Metadata] = metadata or {}
        self.rates: dict[tuple[str, str], float] = rates or {}
        self.errors: dict[str, Exception] = errors or {}
        self.calls: dict[str, int] = {}
        self._lock = threading.Lock()

    def _record(self, method: str, identifier: str) -> None:
        with self._lock:
            self.calls[method] = self.calls.get(method, 0) + 1
        if identifier in self.errors:
            raise self.errors[identifier]

    def validate_identifier(self, identifier: str) -> str:
        if not identifier or not identifier.strip():
            raise InvalidIdentifier(f"Invalid identifier: {identifier!r}")
        return identifier.strip().upper()

    def fetch_quote(self, identifier: str) -> Quote:
        self._record("quote", identifier)
        if identifier not in self.quotes:
            raise NotFound(identifier)
        return self.quotes[identifier]

    def fetch_history(self, identifier: str, history_range: HistoryRange) -> Series:
        self._record("history", identifier)
        if identifier not in self.histories:
            raise NotFound(identifier)
        series = self.histories[identifier]
        if series.last is None or history_range.lookback is None:
            return series
        return series.since(series.last.date - history_range.lookback)

    def fetch_metadata(self, identifier: str) -> Metadata:
        self._record("metadata", identifier)
        if identifier not in self.metadata:
            raise NotFound(identifier)
        return self.metadata[identifier]

    def fetch_rate(self, from_currency: str, to_currency: str) -> Quote:
        pair = f"{from_currency}{to_currency}"
        self._record("rate", pair)
        if (from_currency, to_currency) not in self.rates:
            raise NotFound(pair)
        return Quote(
            identifier=f"{from_currency}/{to_currency}",
            price=self.rates[(from_currency, to_currency)],
            currency=to_currency,
            timestamp=NOW,
        )


def make_quote(identifier: str, price: float, currency: str = "USD", **kwargs) -> Quote:
    return Quote(identifier=identifier, price=price, currency=currency, timestamp=NOW, **kwargs)


def daily_series(identifier: str, start: date, prices: list[float]) -> Series:
    return Series.from_pairs(identifier, [(start + timedelta(days=i), p) for i, p in enumerate(prices)])


@pytest.fixture
def tmp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as d:
        yield d


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_provider():
    """Factory for FakeProvider instances."""
    return FakeProvider


@pytest.fixture
def quote_factory():
    return make_quote


@pytest.fixture
def series_factory():
    return daily_series


@pytest.fixture
def tmp_config_file(tmp_dir):
    """Create a temporary YAML config file with one mixed portfolio."""
    import yaml

    config_data = {
        "paths": {
            "data_dir": os.path.join(tmp_dir, "data"),
            "cache_dir": os.path.join(tmp_dir, "cache"),
            "log_dir": os.path.join(tmp_dir, "logs"),
        },
        "currency": "USD",
        "portfolios": [
            {
                "name": "Main",
                "investments": [
                    {"symbol": "AAPL", "units": 10},
                    {"name": "Bank FD", "value": 500},
                ],
            }
        ],
    }
    config_path = os.path.join(tmp_dir, "config.yaml")
    with open(config_path, "w") as f:
        yaml.dump(config_data, f)
    return config_path
