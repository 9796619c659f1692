"""Tests for navfolio.market.amfi (fake JSON transport, no network)."""

from datetime import UTC, date, datetime, time

import pytest

from navfolio.core.exceptions import InvalidIdentifier, NotFound, SchemaChanged
from navfolio.core.http import NO_RETRY
from navfolio.market.amfi import AmfiProvider
from navfolio.market.models import HistoryRange

ISIN = "INF179K01BE2"

NAV_PAYLOAD = {
    "ISIN": ISIN,
    "name": "HDFC Index Fund",
    "nav": 210.5,
    "date": "2024-06-03",
    "historical_nav": [
        ["2023-05-31", 180.0],
        ["2024-05-30", 205.0],
        ["2024-05-31", 207.25],
    ],
}


class FakeFetcher:
    def __init__(self, routes):
        self.routes = routes
        self.urls = []

    def __call__(self, url, timeout):
        self.urls.append(url)
        for suffix, response in self.routes.items():
            if url.endswith(suffix):
                if isinstance(response, Exception):
                    raise response
                return response
        raise NotFound(url)


def provider(routes):
    fetcher = FakeFetcher(routes)
    amfi = AmfiProvider("https://nav.test", metadata_url="https://meta.test", fetcher=fetcher, retry=NO_RETRY)
    return amfi, fetcher


class TestValidateIdentifier:
    def test_accepts_isin(self):
        amfi, _ = provider({})
        assert amfi.validate_identifier("inf179k01be2") == ISIN

    @pytest.mark.parametrize("bad", ["", "INF179K01BE", "INF179K01BEX", "12F179K01BE2", "INF179K01BE2X"])
    def test_rejects_malformed(self, bad):
        amfi, fetcher = provider({})
        with pytest.raises(InvalidIdentifier):
            amfi.fetch_quote(bad)
        assert fetcher.urls == []


class TestFetchQuote:
    def test_quote(self):
        amfi, fetcher = provider({f"/nav/{ISIN}": NAV_PAYLOAD})
        quote = amfi.fetch_quote(ISIN)

        assert fetcher.urls == [f"https://nav.test/nav/{ISIN}"]
        assert quote.price == 210.5
        assert quote.currency == "INR"
        assert quote.name == "HDFC Index Fund"
        assert quote.timestamp == datetime(2024, 6, 3, 19, 0, tzinfo=UTC)
        assert quote.previous_close == 207.25

    def test_string_nav(self):
        amfi, _ = provider({f"/nav/{ISIN}": {**NAV_PAYLOAD, "nav": "210.50"}})
        assert amfi.fetch_quote(ISIN).price == 210.5

    def test_bad_date(self):
        amfi, _ = provider({f"/nav/{ISIN}": {**NAV_PAYLOAD, "date": "03-06-2024"}})
        with pytest.raises(SchemaChanged, match="date"):
            amfi.fetch_quote(ISIN)

    def test_missing_nav(self):
        payload = {k: v for k, v in NAV_PAYLOAD.items() if k != "nav"}
        amfi, _ = provider({f"/nav/{ISIN}": payload})
        with pytest.raises(SchemaChanged):
            amfi.fetch_quote(ISIN)

    def test_unknown_isin(self):
        amfi, _ = provider({})
        with pytest.raises(NotFound):
            amfi.fetch_quote(ISIN)

    def test_publishes_daily(self):
        assert AmfiProvider.publishes_daily_at == time(19, 0)


class TestFetchHistory:
    def test_includes_latest_nav(self):
        amfi, _ = provider({f"/nav/{ISIN}": NAV_PAYLOAD})
        series = amfi.fetch_history(ISIN, HistoryRange.MAX)
        assert len(series) == 4
        assert series.last.date == date(2024, 6, 3)
        assert series.last.price == 210.5

    def test_trims_to_range(self):
        amfi, _ = provider({f"/nav/{ISIN}": NAV_PAYLOAD})
        series = amfi.fetch_history(ISIN, HistoryRange.ONE_WEEK)
        # Anchor before the cutoff (2024-05-27) is kept
        assert [p.date for p in series] == [date(2023, 5, 31), date(2024, 5, 30), date(2024, 5, 31), date(2024, 6, 3)]
        series = amfi.fetch_history(ISIN, HistoryRange.ONE_DAY)
        assert [p.date for p in series] == [date(2024, 5, 31), date(2024, 6, 3)]

    def test_malformed_history_entry(self):
        amfi, _ = provider({f"/nav/{ISIN}": {**NAV_PAYLOAD, "historical_nav": [["2024-05-31"]]}})
        with pytest.raises(SchemaChanged, match="historical_nav"):
            amfi.fetch_history(ISIN, HistoryRange.MAX)


class TestFetchMetadata:
    def test_metadata(self):
        funds = [{"name": "HDFC Index Fund", "fund_type": "Equity", "fund_category": "Index", "expense_ratio": "0.2"}]
        amfi, fetcher = provider({f"/kuvera/{ISIN}": funds})
        meta = amfi.fetch_metadata(ISIN)
        assert fetcher.urls == [f"https://meta.test/kuvera/{ISIN}"]
        assert meta.category == "Equity"
        assert meta.expense_ratio == 0.2
        assert meta.name == "HDFC Index Fund"

    def test_falls_back_to_fund_category(self):
        amfi, _ = provider({f"/kuvera/{ISIN}": [{"fund_category": "Debt", "expense_ratio": ""}]})
        meta = amfi.fetch_metadata(ISIN)
        assert meta.category == "Debt"
        assert meta.expense_ratio is None

    def test_empty_list_is_not_found(self):
        amfi, _ = provider({f"/kuvera/{ISIN}": []})
        with pytest.raises(NotFound):
            amfi.fetch_metadata(ISIN)

    def test_unparseable_ratio(self):
        amfi, _ = provider({f"/kuvera/{ISIN}": [{"fund_type": "Equity", "expense_ratio": "n/a"}]})
        with pytest.raises(SchemaChanged, match="expense_ratio"):
            amfi.fetch_metadata(ISIN)

    def test_not_a_list(self):
        amfi, _ = provider({f"/kuvera/{ISIN}": {"error": "unknown"}})
        with pytest.raises(SchemaChanged):
            amfi.fetch_metadata(ISIN)

    @pytest.mark.parametrize("first", ["HDFC Index Fund", ["Equity"], 42])
    def test_fund_entry_not_an_object(self, first):
        amfi, _ = provider({f"/kuvera/{ISIN}": [first]})
        with pytest.raises(SchemaChanged, match="expected an object"):
            amfi.fetch_metadata(ISIN)

    def test_non_text_category(self):
        amfi, _ = provider({f"/kuvera/{ISIN}": [{"fund_type": 7}]})
        with pytest.raises(SchemaChanged, match="category"):
            amfi.fetch_metadata(ISIN)


def test_history_not_a_list():
    amfi, _ = provider({f"/nav/{ISIN}": {**NAV_PAYLOAD, "historical_nav": 5}})
    with pytest.raises(SchemaChanged, match="historical_nav"):
        amfi.fetch_history(ISIN, HistoryRange.MAX)
