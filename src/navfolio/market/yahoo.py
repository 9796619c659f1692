"""Yahoo Finance chart API client.

Uses the public ``/v8/finance/chart/{symbol}`` endpoint for quotes, history,
instrument metadata and currency rates (``{FROM}{TO}=X`` pairs).
"""

from __future__ import annotations

import re
import urllib.parse
from datetime import UTC, datetime, timedelta
from typing import Any

from navfolio.core.exceptions import InvalidIdentifier, NotFound, SchemaChanged
from navfolio.core.http import build_url

from .base import PriceProvider, as_float, as_timestamp, optional_text, require, require_object
from .models import HistoryRange, Metadata, PricePoint, Quote, Series

_SYMBOL_RE = re.compile(r"^[A-Za-z0-9.^=_-]{1,24}$")
_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")

# Chart query parameters per range. Each window reaches past the range start
# so the anchor point for backward fill is included.
_RANGE_PARAMS: dict[HistoryRange, tuple[str, str]] = {
    HistoryRange.ONE_DAY: ("5d", "1d"),
    HistoryRange.ONE_WEEK: ("1mo", "1d"),
    HistoryRange.ONE_MONTH: ("3mo", "1d"),
    HistoryRange.THREE_MONTHS: ("6mo", "1d"),
    HistoryRange.SIX_MONTHS: ("1y", "1d"),
    HistoryRange.ONE_YEAR: ("2y", "1d"),
    HistoryRange.THREE_YEARS: ("5y", "1wk"),
    HistoryRange.FIVE_YEARS: ("10y", "1wk"),
    HistoryRange.MAX: ("max", "1mo"),
}

# Yahoo quotes some exchanges in minor units (pence, cents, agorot).
_MINOR_UNITS: dict[str, str] = {"GBp": "GBP", "GBX": "GBP", "ZAc": "ZAR", "ILA": "ILS"}


class YahooProvider(PriceProvider):
    """Stocks, ETFs and FX rates from Yahoo Finance."""

    name = "yahoo"

    def validate_identifier(self, identifier: str) -> str:
        symbol = (identifier or "").strip()
        if not _SYMBOL_RE.match(symbol):
            raise InvalidIdentifier(f"Invalid Yahoo symbol: {identifier!r}")
        return symbol.upper()

    def fetch_quote(self, identifier: str) -> Quote:
        symbol = self.validate_identifier(identifier)
        item = self._chart(symbol, "5d", "1d")
        meta = require_object(item, "meta", symbol)

        price = as_float(require(meta, "regularMarketPrice", symbol), symbol)
        currency = optional_text(require(meta, "currency", symbol), f"{symbol} currency")
        if currency is None:
            raise SchemaChanged(f"{symbol}: empty currency in response")
        closes = [p.price for p in Series(symbol, tuple(self._points(item, symbol)))]
        previous_close = closes[-2] if len(closes) >= 2 else meta.get("chartPreviousClose")
        if previous_close is not None:
            previous_close = as_float(previous_close, symbol)

        if currency in _MINOR_UNITS:
            currency = _MINOR_UNITS[currency]
            price /= 100
            previous_close = previous_close / 100 if previous_close is not None else None

        timestamp = self._market_time(meta, symbol)

        return Quote(
            identifier=symbol,
            price=price,
            currency=currency,
            timestamp=timestamp,
            previous_close=previous_close,
            name=optional_text(meta.get("shortName") or meta.get("longName"), f"{symbol} name"),
        )

    def fetch_history(self, identifier: str, history_range: HistoryRange) -> Series:
        symbol = self.validate_identifier(identifier)
        range_param, interval = _RANGE_PARAMS[history_range]
        item = self._chart(symbol, range_param, interval)
        series = Series(symbol, tuple(self._points(item, symbol)))
        if series.last is None or history_range.lookback is None:
            return series
        return series.since(series.last.date - history_range.lookback)

    def fetch_metadata(self, identifier: str) -> Metadata:
        symbol = self.validate_identifier(identifier)
        meta = require_object(self._chart(symbol, "1d", "1d"), "meta", symbol)
        return Metadata(
            category=optional_text(meta.get("instrumentType"), f"{symbol} instrumentType"),
            expense_ratio=None,
            name=optional_text(meta.get("longName") or meta.get("shortName"), f"{symbol} name"),
        )

    def fetch_rate(self, from_currency: str, to_currency: str) -> Quote:
        """Exchange rate: one unit of *from_currency* in *to_currency*."""
        for code in (from_currency, to_currency):
            if not _CURRENCY_RE.match(code or ""):
                raise InvalidIdentifier(f"Invalid currency code: {code!r}")
        symbol = f"{from_currency}{to_currency}=X"
        meta = require_object(self._chart(symbol, "1d", "1d"), "meta", symbol)
        rate = as_float(require(meta, "regularMarketPrice", symbol), symbol)
        if rate <= 0:
            raise SchemaChanged(f"{symbol}: non-positive rate {rate}")
        return Quote(
            identifier=f"{from_currency}/{to_currency}",
            price=rate,
            currency=to_currency,
            timestamp=self._market_time(meta, symbol),
        )

    def _chart(self, symbol: str, range_param: str, interval: str) -> dict[str, Any]:
        url = build_url(
            self.base_url,
            f"v8/finance/chart/{urllib.parse.quote(symbol)}",
            {"range": range_param, "interval": interval},
        )
        payload = self._get(url)
        chart = require_object(payload, "chart", symbol)
        error = chart.get("error")
        if error:
            description = error.get("description", error) if isinstance(error, dict) else error
            raise NotFound(f"{symbol}: {description}")
        results = chart.get("result")
        if not results:
            raise NotFound(f"No chart data for symbol: {symbol}")
        if not isinstance(results, list):
            raise SchemaChanged(f"{symbol}: expected a list of chart results")
        return require_object(results, 0, symbol)

    @staticmethod
    def _market_time(meta: dict[str, Any], symbol: str) -> datetime:
        market_time = meta.get("regularMarketTime")
        return as_timestamp(market_time, f"{symbol} regularMarketTime") if market_time else datetime.now(UTC)

    @staticmethod
    def _points(item: dict[str, Any], symbol: str) -> list[PricePoint]:
        timestamps = item.get("timestamp")
        if not timestamps:
            return []
        quotes = require(require_object(item, "indicators", symbol), "quote", symbol)
        closes = require(require_object(quotes, 0, symbol), "close", symbol)
        if not isinstance(timestamps, list) or not isinstance(closes, list):
            raise SchemaChanged(f"{symbol}: expected lists of timestamps and closes")
        if len(closes) != len(timestamps):
            raise SchemaChanged(f"{symbol}: {len(timestamps)} timestamps but {len(closes)} closes")

        meta = item.get("meta")
        gmtoffset = meta.get("gmtoffset") if isinstance(meta, dict) else None
        offset = timedelta(seconds=as_float(gmtoffset or 0, f"{symbol} gmtoffset"))
        points = []
        for ts, close in zip(timestamps, closes):
            if close is None:
                continue
            local_day = (as_timestamp(ts, f"{symbol} timestamp") + offset).date()
            points.append(PricePoint(local_day, as_float(close, symbol)))
        return points
