"""
Performance analytics over price histories.

The module-level functions are pure and work on ``Series`` and plain numbers;
``AnalyticsEngine`` fetches the histories and metadata a valuation needs and
feeds them through those functions.

Missing data is never turned into zero: undefined changes raise ``NoData``,
undefined CAGRs raise ``InsufficientHistory``, and aggregates are taken over
the instruments that have a value with the weights renormalized.
"""

from __future__ import annotations

import calendar
import statistics
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum
from typing import NamedTuple

from loguru import logger

from navfolio.core.exceptions import AnalyticsError, InsufficientHistory, NavfolioError, NoData
from navfolio.market.base import PriceProvider
from navfolio.market.models import HistoryRange, Metadata, Series

from .fetch import FetchPool
from .models import FixedDeposit, Investment, MutualFund, Stock
from .valuation import InvestmentValue, ValuationResult

DAYS_PER_YEAR = 365.25


# ---------------------------------------------------------------------------
# Period change
# ---------------------------------------------------------------------------


def period_change(series: Series, history_range: HistoryRange) -> float:
    """Fractional change from the range start to the latest point.

    The start price is backward-filled: the latest point on or before
    ``latest_date - lookback``. MAX starts at the first point.

    Raises:
        NoData: No earlier point exists, or the start price is not positive.
    """
    latest = series.last
    if latest is None:
        raise NoData(f"{series.identifier}: empty history")

    if history_range.lookback is None:
        anchor = series.first
    else:
        anchor = series.price_at(latest.date - history_range.lookback)

    if anchor is None or anchor.date >= latest.date:
        raise NoData(f"{series.identifier}: no price at or before the start of {history_range.value}")
    if anchor.price <= 0:
        raise NoData(f"{series.identifier}: non-positive start price {anchor.price} on {anchor.date}")
    return (latest.price - anchor.price) / anchor.price


def weighted_change(pairs: Iterable[tuple[float, float | None]]) -> float | None:
    """Weighted average of ``(weight, change)`` pairs, skipping undefined changes.

    The denominator is the sum of the included weights, so one instrument
    without data does not dilute the others. None when nothing qualifies.
    """
    numerator = 0.0
    denominator = 0.0
    for weight, change in pairs:
        if change is None or weight <= 0:
            continue
        numerator += weight * change
        denominator += weight
    if denominator == 0:
        return None
    return numerator / denominator


# ---------------------------------------------------------------------------
# CAGR and rolling returns
# ---------------------------------------------------------------------------


def cagr(start_value: float, end_value: float, days_held: float) -> float:
    """Compound annual growth rate: ``(end/start) ** (365.25/days_held) - 1``."""
    if days_held < 1:
        raise InsufficientHistory(f"Holding period of {days_held} day(s) is too short for CAGR")
    if start_value <= 0:
        raise InsufficientHistory(f"Start value must be positive for CAGR, got {start_value}")
    if end_value < 0:
        raise NoData(f"End value must not be negative for CAGR, got {end_value}")
    try:
        return (end_value / start_value) ** (DAYS_PER_YEAR / days_held) - 1
    except OverflowError as e:
        raise InsufficientHistory(f"Holding period of {days_held} day(s) is too short to annualize this move") from e


def series_cagr(series: Series, history_range: HistoryRange = HistoryRange.THREE_YEARS) -> float:
    """CAGR from the (backward-filled) start of *history_range* to the latest point."""
    end = series.last
    if end is None:
        raise InsufficientHistory(f"{series.identifier}: empty history")

    if history_range.lookback is None:
        start = series.first
    else:
        start = series.price_at(end.date - history_range.lookback)
    if start is None:
        raise InsufficientHistory(f"{series.identifier}: history does not reach back {history_range.value}")
    return cagr(start.price, end.price, (end.date - start.date).days)


def add_months(day: date, months: int) -> date:
    """Shift by calendar months, clamping to the end of shorter months."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


class RollingReturn(NamedTuple):
    start: date
    cagr: float


class RollingReturns:
    """CAGR over a fixed window slid across a series at a fixed stride.

    Iterating yields ``RollingReturn(window_start, cagr)`` lazily, and every
    ``iter()`` starts over from the first window. Windows that would end
    after the last point, or whose CAGR is undefined, are skipped.

    Args:
        series: Full price history.
        window: Window length; MAX is not a valid window.
        stride_months: Months between consecutive window starts.
    """

    def __init__(self, series: Series, window: HistoryRange = HistoryRange.ONE_YEAR, stride_months: int = 1):
        if window.lookback is None:
            raise ValueError("Rolling window needs a finite range, not MAX")
        if stride_months < 1:
            raise ValueError(f"stride_months must be at least 1, got {stride_months}")
        self.series = series
        self.window = window
        self.stride_months = stride_months

    def __iter__(self) -> Iterator[RollingReturn]:
        first, last = self.series.first, self.series.last
        if first is None:
            return

        lookback = self.window.lookback
        step = 0
        start_day = first.date
        while start_day + lookback <= last.date:
            start = self.series.price_at(start_day)
            end = self.series.price_at(start_day + lookback)
            try:
                yield RollingReturn(start_day, cagr(start.price, end.price, (end.date - start.date).days))
            except AnalyticsError as e:
                logger.debug(f"Skipping rolling window at {start_day} for {self.series.identifier}: {e}")
            step += 1
            start_day = add_months(first.date, step * self.stride_months)


@dataclass(frozen=True)
class RollingSummary:
    count: int
    minimum: float
    maximum: float
    mean: float
    median: float
    positive_share: float


def summarize_rolling(returns: Iterable[RollingReturn]) -> RollingSummary | None:
    """Distribution of rolling CAGRs; None when there are no windows."""
    values = [r.cagr for r in returns]
    if not values:
        return None
    return RollingSummary(
        count=len(values),
        minimum=min(values),
        maximum=max(values),
        mean=statistics.fmean(values),
        median=statistics.median(values),
        positive_share=sum(1 for v in values if v > 0) / len(values),
    )


# ---------------------------------------------------------------------------
# Allocation and fees
# ---------------------------------------------------------------------------


class AssetCategory(StrEnum):
    EQUITY = "Equity"
    DEBT = "Debt"
    HYBRID = "Hybrid"
    OTHER = "Other"
    UNCATEGORIZED = "Uncategorized"


_CATEGORY_ALIASES: dict[str, AssetCategory] = {
    "equity": AssetCategory.EQUITY,
    "stock": AssetCategory.EQUITY,
    "debt": AssetCategory.DEBT,
    "income": AssetCategory.DEBT,
    "fixed income": AssetCategory.DEBT,
    "hybrid": AssetCategory.HYBRID,
    "balanced": AssetCategory.HYBRID,
    "dynamic": AssetCategory.HYBRID,
}


def normalize_category(raw: str | None) -> AssetCategory:
    """Map a provider category string to an AssetCategory."""
    if raw is None or not str(raw).strip():
        return AssetCategory.UNCATEGORIZED
    return _CATEGORY_ALIASES.get(str(raw).strip().lower(), AssetCategory.OTHER)


@dataclass(frozen=True)
class CategoryShare:
    category: str
    value: float
    share: float
    holdings: tuple[str, ...] = ()


def allocate(holdings: Iterable[tuple[str, str | None, float]]) -> list[CategoryShare]:
    """Group ``(label, category, value)`` triples into category shares, largest first.

    A None category lands in ``Uncategorized``; shares are 0 when the total is 0.
    """
    values: dict[str, float] = {}
    members: dict[str, list[str]] = {}
    for label, category, value in holdings:
        bucket = category or AssetCategory.UNCATEGORIZED.value
        values[bucket] = values.get(bucket, 0.0) + value
        members.setdefault(bucket, []).append(label)

    total = sum(values.values())
    shares = [
        CategoryShare(category=c, value=v, share=v / total if total > 0 else 0.0, holdings=tuple(members[c]))
        for c, v in values.items()
    ]
    return sorted(shares, key=lambda s: (-s.value, s.category))


def weighted_expense_ratio(pairs: Iterable[tuple[float, float | None]]) -> tuple[float | None, float]:
    """Weighted expense ratio over holdings with a known ratio.

    Returns ``(ratio, covered_weight)`` where ``covered_weight`` is the share
    of the portfolio the ratio is based on. Unknown ratios are excluded, not
    counted as zero.
    """
    known = [(w, r) for w, r in pairs if r is not None and w > 0]
    covered = sum(w for w, _ in known)
    if covered == 0:
        return None, 0.0
    return sum(w * r for w, r in known) / covered, covered


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


@dataclass
class InstrumentChange:
    entry: InvestmentValue
    changes: dict[HistoryRange, float | None] = field(default_factory=dict)
    errors: dict[HistoryRange, NavfolioError] = field(default_factory=dict)


@dataclass
class ChangeReport:
    valuation: ValuationResult
    ranges: list[HistoryRange]
    rows: list[InstrumentChange]
    portfolio: dict[HistoryRange, float | None]


@dataclass
class InstrumentReturn:
    entry: InvestmentValue
    cagr: float | None = None
    error: NavfolioError | None = None
    rolling: RollingSummary | None = None
    rolling_error: NavfolioError | None = None


@dataclass
class ReturnsReport:
    valuation: ValuationResult
    history_range: HistoryRange
    rows: list[InstrumentReturn]
    portfolio_cagr: float | None
    rolling_window: HistoryRange | None = None


@dataclass(frozen=True)
class FeeRow:
    entry: InvestmentValue
    expense_ratio: float | None
    name: str | None = None
    error: NavfolioError | None = None


@dataclass
class FeeReport:
    valuation: ValuationResult
    rows: list[FeeRow]
    portfolio_ratio: float | None
    covered_weight: float


@dataclass
class AllocationReport:
    valuation: ValuationResult
    shares: list[CategoryShare]


class AnalyticsEngine:
    """Fetches histories and metadata for a valuation and aggregates them.

    Uses the same providers as ``ValuationEngine`` (normally cache-backed) so
    a run never asks a source for the same thing twice.
    """

    def __init__(self, stocks: PriceProvider, funds: PriceProvider, pool: FetchPool | None = None):
        self.stocks = stocks
        self.funds = funds
        self.pool = pool or FetchPool()

    def history(self, investment: Investment, history_range: HistoryRange) -> Series:
        match investment:
            case Stock(symbol=symbol):
                return self.stocks.fetch_history(symbol, history_range)
            case MutualFund(isin=isin):
                return self.funds.fetch_history(isin, history_range)
            case FixedDeposit(name=name):
                raise NoData(f"{name}: fixed deposits have no price history")
            case _:
                raise TypeError(f"Unknown investment type: {type(investment).__name__}")

    def metadata(self, investment: Investment) -> Metadata | None:
        """Provider metadata, or None for holdings no provider describes."""
        match investment:
            case Stock(symbol=symbol):
                return self.stocks.fetch_metadata(symbol)
            case MutualFund(isin=isin):
                return self.funds.fetch_metadata(isin)
            case FixedDeposit():
                return None
            case _:
                raise TypeError(f"Unknown investment type: {type(investment).__name__}")

    def changes(self, valuation: ValuationResult, ranges: Iterable[HistoryRange]) -> ChangeReport:
        ranges = list(dict.fromkeys(ranges))
        entries = valuation.entries
        tasks = {
            (idx, r): (lambda inv=entry.investment, r=r: period_change(self.history(inv, r), r))
            for idx, entry in enumerate(entries)
            for r in ranges
        }
        outcomes = self.pool.run(tasks)

        rows = []
        for idx, entry in enumerate(entries):
            row = InstrumentChange(entry=entry)
            for r in ranges:
                outcome = outcomes[(idx, r)]
                row.changes[r] = outcome.value if outcome.ok else None
                if not outcome.ok:
                    row.errors[r] = outcome.error
            rows.append(row)

        portfolio = {r: weighted_change((row.entry.weight, row.changes[r]) for row in rows) for r in ranges}
        return ChangeReport(valuation=valuation, ranges=ranges, rows=rows, portfolio=portfolio)

    def returns(
        self,
        valuation: ValuationResult,
        history_range: HistoryRange = HistoryRange.THREE_YEARS,
        rolling_window: HistoryRange | None = None,
        stride_months: int = 1,
    ) -> ReturnsReport:
        entries = valuation.entries
        tasks = {
            ("cagr", idx): (lambda inv=entry.investment: series_cagr(self.history(inv, history_range), history_range))
            for idx, entry in enumerate(entries)
        }
        if rolling_window is not None:
            for idx, entry in enumerate(entries):
                tasks[("rolling", idx)] = lambda inv=entry.investment: summarize_rolling(
                    RollingReturns(self.history(inv, HistoryRange.MAX), rolling_window, stride_months)
                )
        outcomes = self.pool.run(tasks)

        rows = []
        for idx, entry in enumerate(entries):
            outcome = outcomes[("cagr", idx)]
            row = InstrumentReturn(entry=entry, cagr=outcome.value, error=outcome.error)
            if rolling_window is not None:
                rolling = outcomes[("rolling", idx)]
                row.rolling, row.rolling_error = rolling.value, rolling.error
            rows.append(row)

        portfolio_cagr = weighted_change((row.entry.weight, row.cagr) for row in rows)
        return ReturnsReport(
            valuation=valuation,
            history_range=history_range,
            rows=rows,
            portfolio_cagr=portfolio_cagr,
            rolling_window=rolling_window,
        )

    def fees(self, valuation: ValuationResult) -> FeeReport:
        outcomes = self._metadata_for(valuation)
        rows = []
        for idx, entry in enumerate(valuation.entries):
            outcome = outcomes[idx]
            meta = outcome.value if outcome.ok else None
            rows.append(
                FeeRow(
                    entry=entry,
                    expense_ratio=meta.expense_ratio if meta else None,
                    name=(meta.name if meta else None) or entry.name,
                    error=outcome.error,
                )
            )
        ratio, covered = weighted_expense_ratio((row.entry.weight, row.expense_ratio) for row in rows)
        return FeeReport(valuation=valuation, rows=rows, portfolio_ratio=ratio, covered_weight=covered)

    def allocation(self, valuation: ValuationResult) -> AllocationReport:
        """Category shares of the valued holdings.

        Category order: the investment's configured category (known aliases
        such as "stock" are mapped to their AssetCategory, anything else is
        kept as written), then the provider's normalized category, then
        ``Uncategorized``.
        """
        outcomes = self._metadata_for(valuation, skip_overridden=True)
        holdings = []
        for idx, entry in enumerate(valuation.entries):
            if not entry.ok:
                continue
            category = entry.investment.category
            if category is not None:
                alias = _CATEGORY_ALIASES.get(category.strip().lower())
                category = alias.value if alias else category.strip()
            else:
                outcome = outcomes.get(idx)
                meta = outcome.value if outcome is not None and outcome.ok else None
                category = normalize_category(meta.category if meta else None).value
            holdings.append((entry.label, category, entry.value))
        return AllocationReport(valuation=valuation, shares=allocate(holdings))

    def _metadata_for(self, valuation: ValuationResult, skip_overridden: bool = False):
        tasks = {
            idx: (lambda inv=entry.investment: self.metadata(inv))
            for idx, entry in enumerate(valuation.entries)
            if not (skip_overridden and entry.investment.category)
        }
        outcomes = self.pool.run(tasks)
        for idx, outcome in outcomes.items():
            if not outcome.ok:
                logger.debug(f"No metadata for {valuation.entries[idx].label}: {outcome.error}")
        return outcomes
