"""AMFI mutual fund NAV client.

NAVs come from ``{base_url}/nav/{isin}`` (captnemo's AMFI mirror), which
returns the latest NAV plus the full NAV history. Fund metadata (category,
expense ratio) comes from the Kuvera mirror at ``{metadata_url}/kuvera/{isin}``.

AMFI publishes NAVs once a day; ``publishes_daily_at`` lets the cache expire
entries right when fresh numbers land.
"""

from __future__ import annotations

import re
from datetime import UTC, date, datetime, time
from typing import Any

from navfolio.core.exceptions import InvalidIdentifier, NotFound, SchemaChanged
from navfolio.core.http import JsonFetcher, RetryPolicy, build_url, get_json

from .base import PriceProvider, as_float, optional_text, require, require_object
from .models import HistoryRange, Metadata, PricePoint, Quote, Series

_ISIN_RE = re.compile(r"^[A-Z]{2}[A-Z0-9]{9}[0-9]$")
_DATE_FORMAT = "%Y-%m-%d"


class AmfiProvider(PriceProvider):
    """Indian mutual fund NAVs keyed by ISIN."""

    name = "amfi"
    publishes_daily_at = time(19, 0)

    def __init__(
        self,
        base_url: str,
        metadata_url: str | None = None,
        fetcher: JsonFetcher = get_json,
        retry: RetryPolicy | None = None,
        timeout: float = 15,
    ):
        super().__init__(base_url, fetcher=fetcher, retry=retry, timeout=timeout)
        self.metadata_url = (metadata_url or base_url).rstrip("/")

    def validate_identifier(self, identifier: str) -> str:
        isin = (identifier or "").strip().upper()
        if not _ISIN_RE.match(isin):
            raise InvalidIdentifier(f"Invalid ISIN: {identifier!r}")
        return isin

    def fetch_quote(self, identifier: str) -> Quote:
        isin = self.validate_identifier(identifier)
        payload = self._nav(isin)
        nav_date = self._parse_date(require(payload, "date", isin), isin)
        history = self._series(isin, payload)
        previous = history.price_at(date.fromordinal(nav_date.toordinal() - 1))

        return Quote(
            identifier=isin,
            price=as_float(require(payload, "nav", isin), isin),
            currency="INR",
            timestamp=datetime.combine(nav_date, self.publishes_daily_at, tzinfo=UTC),
            previous_close=previous.price if previous else None,
            name=optional_text(payload.get("name"), f"{isin} name"),
        )

    def fetch_history(self, identifier: str, history_range: HistoryRange) -> Series:
        isin = self.validate_identifier(identifier)
        series = self._series(isin, self._nav(isin))
        if series.last is None or history_range.lookback is None:
            return series
        return series.since(series.last.date - history_range.lookback)

    def fetch_metadata(self, identifier: str) -> Metadata:
        isin = self.validate_identifier(identifier)
        funds = self._get(build_url(self.metadata_url, f"kuvera/{isin}"))
        if not isinstance(funds, list):
            raise SchemaChanged(f"{isin}: expected a list of funds from metadata endpoint")
        if not funds:
            raise NotFound(f"No fund metadata for ISIN: {isin}")
        fund = require_object(funds, 0, isin)

        raw_ratio = fund.get("expense_ratio")
        expense_ratio = None
        if raw_ratio not in (None, ""):
            expense_ratio = as_float(raw_ratio, f"{isin} expense_ratio")

        return Metadata(
            category=optional_text(fund.get("fund_type") or fund.get("fund_category"), f"{isin} category"),
            expense_ratio=expense_ratio,
            name=optional_text(fund.get("name"), f"{isin} name"),
        )

    def _nav(self, isin: str) -> dict[str, Any]:
        payload = self._get(build_url(self.base_url, f"nav/{isin}"))
        if not isinstance(payload, dict):
            raise SchemaChanged(f"{isin}: expected an object from NAV endpoint")
        return payload

    def _series(self, isin: str, payload: dict[str, Any]) -> Series:
        points = []
        history = payload.get("historical_nav") or []
        if not isinstance(history, list):
            raise SchemaChanged(f"{isin}: expected a list for historical_nav")
        for entry in history:
            try:
                raw_date, raw_nav = entry
            except (TypeError, ValueError) as e:
                raise SchemaChanged(f"{isin}: malformed historical_nav entry {entry!r}") from e
            points.append(PricePoint(self._parse_date(raw_date, isin), as_float(raw_nav, isin)))

        # The latest NAV is not always part of historical_nav.
        if payload.get("nav") is not None and payload.get("date"):
            points.append(PricePoint(self._parse_date(payload["date"], isin), as_float(payload["nav"], isin)))
        return Series.from_pairs(isin, points)

    @staticmethod
    def _parse_date(value: Any, isin: str) -> date:
        try:
            return datetime.strptime(str(value), _DATE_FORMAT).date()
        except ValueError as e:
            raise SchemaChanged(f"{isin}: unparseable date {value!r}") from e
