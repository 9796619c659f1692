"""
Build Portfolio models from configuration.

Expected shape (YAML)::

    currency: USD
    portfolios:
      - name: Retirement
        currency: INR            # optional, defaults to the top-level currency
        investments:
          - symbol: AAPL
            units: 10
          - isin: INF109K01Z48
            units: 120.5
            category: Equity     # optional override
          - name: Bank FD
            value: 500
            currency: USD        # optional, defaults to the portfolio currency

Every structural problem surfaces as a ConfigurationError naming the
offending portfolio and position.
"""

from __future__ import annotations

from typing import Any

from navfolio.core.config import Config
from navfolio.core.exceptions import ConfigurationError

from .models import FixedDeposit, Investment, MutualFund, Portfolio, Stock


def load_portfolios(config: Config) -> list[Portfolio]:
    """Parse every configured portfolio, in declared order."""
    raw_portfolios = config.get("portfolios") or []
    if not isinstance(raw_portfolios, list):
        raise ConfigurationError("'portfolios' must be a list")
    if not raw_portfolios:
        raise ConfigurationError("No portfolios configured. Run 'navfolio setup' to create an example config.")

    default_currency = config.get("currency", "USD")
    return [parse_portfolio(raw, default_currency, idx) for idx, raw in enumerate(raw_portfolios, 1)]


def parse_portfolio(raw: Any, default_currency: str, position: int = 1) -> Portfolio:
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Portfolio #{position} must be a mapping")
    name = raw.get("name") or ""
    where = f"portfolio '{name}'" if name else f"portfolio #{position}"

    currency = str(raw.get("currency") or default_currency).strip().upper()
    raw_investments = raw.get("investments") or []
    if not isinstance(raw_investments, list):
        raise ConfigurationError(f"{where}: 'investments' must be a list")

    investments = [
        parse_investment(item, currency, f"{where}, investment #{idx}")
        for idx, item in enumerate(raw_investments, 1)
    ]
    try:
        return Portfolio(name=str(name), investments=tuple(investments), currency=currency)
    except ValueError as e:
        raise ConfigurationError(f"{where}: {e}") from e


def parse_investment(raw: Any, portfolio_currency: str, where: str) -> Investment:
    """Recognise an investment by its keys: symbol+units, isin+units, or name+value."""
    if not isinstance(raw, dict):
        raise ConfigurationError(f"{where}: expected a mapping, got {type(raw).__name__}")
    category = raw.get("category") or None
    if category is not None and not isinstance(category, str):
        raise ConfigurationError(f"{where}: 'category' must be a string, got {category!r}")

    try:
        if "symbol" in raw:
            return Stock(symbol=str(raw["symbol"]).strip(), units=_number(raw, "units", where), category=category)
        if "isin" in raw:
            return MutualFund(isin=str(raw["isin"]).strip(), units=_number(raw, "units", where), category=category)
        if "name" in raw and "value" in raw:
            currency = str(raw.get("currency") or portfolio_currency).strip().upper()
            return FixedDeposit(
                name=str(raw["name"]),
                value=_number(raw, "value", where),
                currency=currency,
                category=category,
            )
    except ValueError as e:
        raise ConfigurationError(f"{where}: {e}") from e

    raise ConfigurationError(f"{where}: expected 'symbol' + 'units', 'isin' + 'units', or 'name' + 'value'")


def _number(raw: dict, key: str, where: str) -> float:
    if key not in raw:
        raise ConfigurationError(f"{where}: missing '{key}'")
    value = raw[key]
    if isinstance(value, bool):
        raise ConfigurationError(f"{where}: '{key}' must be a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{where}: '{key}' must be a number, got {value!r}") from e
