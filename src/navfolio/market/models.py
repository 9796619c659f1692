"""Market data models produced by price providers.

All models are immutable and round-trip through plain dicts so the cache
can persist them as JSON.
"""

from __future__ import annotations

import bisect
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import StrEnum
from typing import Any, NamedTuple


class HistoryRange(StrEnum):
    ONE_DAY = "1D"
    ONE_WEEK = "1W"
    ONE_MONTH = "1M"
    THREE_MONTHS = "3M"
    SIX_MONTHS = "6M"
    ONE_YEAR = "1Y"
    THREE_YEARS = "3Y"
    FIVE_YEARS = "5Y"
    MAX = "MAX"

    @property
    def lookback(self) -> timedelta | None:
        """Calendar span covered by the range; None for MAX."""
        return _LOOKBACK[self]

    @classmethod
    def parse(cls, value: str) -> HistoryRange:
        try:
            return cls(value.strip().upper())
        except ValueError:
            allowed = ", ".join(r.value for r in cls)
            raise ValueError(f"Invalid range '{value}'. Expected one of: {allowed}") from None


_LOOKBACK: dict[HistoryRange, timedelta | None] = {
    HistoryRange.ONE_DAY: timedelta(days=1),
    HistoryRange.ONE_WEEK: timedelta(days=7),
    HistoryRange.ONE_MONTH: timedelta(days=30),
    HistoryRange.THREE_MONTHS: timedelta(days=91),
    HistoryRange.SIX_MONTHS: timedelta(days=182),
    HistoryRange.ONE_YEAR: timedelta(days=365),
    HistoryRange.THREE_YEARS: timedelta(days=365 * 3),
    HistoryRange.FIVE_YEARS: timedelta(days=1826),
    HistoryRange.MAX: None,
}


class PricePoint(NamedTuple):
    date: date
    price: float


@dataclass(frozen=True)
class Series:
    """Price history, ascending by date, one point per date.

    Input order does not matter; when a date repeats, the last value wins.
    """

    identifier: str
    points: tuple[PricePoint, ...] = ()
    _dates: tuple[date, ...] = field(default=(), init=False, repr=False, compare=False)

    def __post_init__(self):
        by_date: dict[date, float] = {}
        for point_date, price in self.points:
            by_date[point_date] = float(price)
        ordered = tuple(PricePoint(d, by_date[d]) for d in sorted(by_date))
        object.__setattr__(self, "points", ordered)
        object.__setattr__(self, "_dates", tuple(p.date for p in ordered))

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[PricePoint]:
        return iter(self.points)

    @property
    def first(self) -> PricePoint | None:
        return self.points[0] if self.points else None

    @property
    def last(self) -> PricePoint | None:
        return self.points[-1] if self.points else None

    def price_at(self, when: date) -> PricePoint | None:
        """Point on *when*, else the nearest earlier one (backward fill)."""
        idx = bisect.bisect_right(self._dates, when)
        if idx == 0:
            return None
        return self.points[idx - 1]

    def since(self, cutoff: date) -> Series:
        """Points after *cutoff*, plus the anchor point on or just before it."""
        idx = bisect.bisect_right(self._dates, cutoff)
        start = max(idx - 1, 0)
        return Series(self.identifier, self.points[start:])

    def to_dict(self) -> dict[str, Any]:
        return {
            "identifier": self.identifier,
            "points": [[p.date.isoformat(), p.price] for p in self.points],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Series:
        return cls(
            identifier=data["identifier"],
            points=tuple(PricePoint(date.fromisoformat(d), float(p)) for d, p in data["points"]),
        )

    @classmethod
    def from_pairs(cls, identifier: str, pairs: Iterable[tuple[date, float]]) -> Series:
        return cls(identifier, tuple(PricePoint(d, p) for d, p in pairs))


@dataclass(frozen=True)
class Quote:
    """Latest price for an instrument or currency pair."""

    identifier: str
    price: float
    currency: str
    timestamp: datetime
    previous_close: float | None = None
    name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "identifier": self.identifier,
            "price": self.price,
            "currency": self.currency,
            "timestamp": self.timestamp.isoformat(),
            "previous_close": self.previous_close,
            "name": self.name,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Quote:
        return cls(
            identifier=data["identifier"],
            price=float(data["price"]),
            currency=data["currency"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
            previous_close=data.get("previous_close"),
            name=data.get("name"),
        )


@dataclass(frozen=True)
class Metadata:
    """Descriptive data used for allocation and fee reporting.

    ``expense_ratio`` is a percentage (0.45 means 0.45% a year) and is None
    when the provider does not publish one.
    """

    category: str | None = None
    expense_ratio: float | None = None
    name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"category": self.category, "expense_ratio": self.expense_ratio, "name": self.name}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Metadata:
        ratio = data.get("expense_ratio")
        return cls(
            category=data.get("category"),
            expense_ratio=float(ratio) if ratio is not None else None,
            name=data.get("name"),
        )
