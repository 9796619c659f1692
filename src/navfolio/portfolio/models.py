"""Portfolio data models.

An investment is one of three frozen dataclasses (``Stock``, ``MutualFund``,
``FixedDeposit``); engines dispatch on the concrete type with ``match``.
Validation happens at construction so a loaded portfolio is always usable.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")


def validate_currency(code: str) -> str:
    if not isinstance(code, str) or not _CURRENCY_RE.match(code):
        raise ValueError(f"Invalid currency code: {code!r} (expected three uppercase letters, e.g. USD)")
    return code


@dataclass(frozen=True)
class Stock:
    """Exchange-traded instrument priced by Yahoo Finance.

    Attributes:
        symbol: Yahoo symbol, e.g. "AAPL" or "RELIANCE.NS".
        units: Number of shares held.
        category: Optional allocation category overriding provider metadata.
    """

    symbol: str
    units: float
    category: str | None = None

    def __post_init__(self):
        if not self.symbol:
            raise ValueError("Stock symbol cannot be empty")
        if not self.units > 0:
            raise ValueError(f"Stock {self.symbol} must have positive units, got {self.units}")

    @property
    def label(self) -> str:
        return self.symbol


@dataclass(frozen=True)
class MutualFund:
    """Indian mutual fund priced by its AMFI NAV.

    Attributes:
        isin: 12-character ISIN of the scheme.
        units: Number of units held.
        category: Optional allocation category overriding provider metadata.
    """

    isin: str
    units: float
    category: str | None = None

    def __post_init__(self):
        if not self.isin:
            raise ValueError("Mutual fund ISIN cannot be empty")
        if not self.units > 0:
            raise ValueError(f"Mutual fund {self.isin} must have positive units, got {self.units}")

    @property
    def label(self) -> str:
        return self.isin


@dataclass(frozen=True)
class FixedDeposit:
    """Static-value holding; never priced by a provider."""

    name: str
    value: float
    currency: str | None = None
    category: str | None = None

    def __post_init__(self):
        if not self.name:
            raise ValueError("Fixed deposit name cannot be empty")
        if self.value < 0:
            raise ValueError(f"Fixed deposit {self.name} has negative value: {self.value}")
        if self.currency is not None:
            validate_currency(self.currency)

    @property
    def label(self) -> str:
        return self.name


Investment = Stock | MutualFund | FixedDeposit


@dataclass(frozen=True)
class Portfolio:
    """Named, ordered set of investments valued in one currency."""

    name: str
    investments: tuple[Investment, ...]
    currency: str = "USD"

    def __post_init__(self):
        if not self.name:
            raise ValueError("Portfolio name cannot be empty")
        validate_currency(self.currency)
        object.__setattr__(self, "investments", tuple(self.investments))
