"""Tests for navfolio.portfolio.loader."""

import pytest

from navfolio.core.config import Config
from navfolio.core.exceptions import ConfigurationError
from navfolio.portfolio.loader import load_portfolios
from navfolio.portfolio.models import FixedDeposit, MutualFund, Stock


def config_with(tmp_dir, **data):
    return Config(data_dir=tmp_dir, defaults=data)


class TestLoadPortfolios:
    def test_from_file(self, tmp_config_file, tmp_dir):
        portfolios = load_portfolios(Config(config_file=tmp_config_file, data_dir=tmp_dir))
        assert len(portfolios) == 1
        main = portfolios[0]
        assert main.name == "Main"
        assert main.currency == "USD"
        assert main.investments == (Stock("AAPL", 10.0), FixedDeposit("Bank FD", 500.0, currency="USD"))

    def test_all_investment_kinds(self, tmp_dir):
        config = config_with(
            tmp_dir,
            currency="INR",
            portfolios=[
                {
                    "name": "India",
                    "investments": [
                        {"symbol": "TCS.NS", "units": "5"},
                        {"isin": "INF179K01BE2", "units": 12.5, "category": "Equity"},
                        {"name": "SBI FD", "value": 100000},
                        {"name": "US FD", "value": 1000, "currency": "usd"},
                    ],
                }
            ],
        )
        (india,) = load_portfolios(config)
        assert india.currency == "INR"
        stock, fund, fd, us_fd = india.investments
        assert stock == Stock("TCS.NS", 5.0)
        assert fund == MutualFund("INF179K01BE2", 12.5, category="Equity")
        assert fd.currency == "INR"
        assert us_fd.currency == "USD"

    def test_portfolio_currency_override(self, tmp_dir):
        config = config_with(tmp_dir, portfolios=[{"name": "EU", "currency": "eur", "investments": []}])
        assert load_portfolios(config)[0].currency == "EUR"

    def test_declared_order_kept(self, tmp_dir):
        config = config_with(tmp_dir, portfolios=[{"name": n, "investments": []} for n in ("b", "a", "c")])
        assert [p.name for p in load_portfolios(config)] == ["b", "a", "c"]

    def test_no_portfolios(self, tmp_dir):
        with pytest.raises(ConfigurationError, match="No portfolios"):
            load_portfolios(config_with(tmp_dir))

    @pytest.mark.parametrize(
        "investment, message",
        [
            ({"symbol": "AAPL"}, "missing 'units'"),
            ({"symbol": "AAPL", "units": "ten"}, "must be a number"),
            ({"symbol": "AAPL", "units": True}, "must be a number"),
            ({"isin": "INF179K01BE2", "units": 0}, "positive units"),
            ({"name": "FD", "value": -1}, "negative"),
            ({"ticker": "AAPL"}, "expected 'symbol'"),
            ("AAPL", "expected a mapping"),
            ({"symbol": "AAPL", "units": 1, "category": 1}, "'category' must be a string"),
            ({"name": "FD", "value": 5, "category": ["Debt"]}, "'category' must be a string"),
        ],
    )
    def test_invalid_investment(self, tmp_dir, investment, message):
        config = config_with(tmp_dir, portfolios=[{"name": "Main", "investments": [investment]}])
        with pytest.raises(ConfigurationError, match=message) as excinfo:
            load_portfolios(config)
        assert "portfolio 'Main', investment #1" in str(excinfo.value)

    def test_invalid_currency(self, tmp_dir):
        config = config_with(tmp_dir, currency="DOLLARS", portfolios=[{"name": "Main", "investments": []}])
        with pytest.raises(ConfigurationError, match="currency"):
            load_portfolios(config)

    def test_missing_name(self, tmp_dir):
        config = config_with(tmp_dir, portfolios=[{"investments": []}])
        with pytest.raises(ConfigurationError, match="portfolio #1"):
            load_portfolios(config)

    def test_portfolios_must_be_list(self, tmp_dir):
        with pytest.raises(ConfigurationError, match="must be a list"):
            load_portfolios(config_with(tmp_dir, portfolios={"name": "Main"}))
