"""
Portfolio valuation.

Resolves a price for every investment, converts it to the portfolio currency
and derives weights. Per-instrument failures are kept on the entry and never
stop the rest of the portfolio from being valued.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from loguru import logger

from navfolio.core.exceptions import NavfolioError
from navfolio.market.base import PriceProvider
from navfolio.market.currency import CurrencyConverter
from navfolio.market.models import Quote

from .fetch import FetchPool
from .models import FixedDeposit, Investment, MutualFund, Portfolio, Stock


@dataclass
class InvestmentValue:
    """One investment's valuation.

    ``value`` is in the portfolio currency and None when the instrument
    could not be valued; ``error`` then says why.
    """

    investment: Investment
    value: float | None = None
    quote: Quote | None = None
    rate: float = 1.0
    weight: float = 0.0
    error: NavfolioError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def label(self) -> str:
        return self.investment.label

    @property
    def name(self) -> str | None:
        return self.quote.name if self.quote else None

    @property
    def day_change(self) -> float | None:
        """Fractional move since the previous close, when the source reports one."""
        if not self.ok or self.quote is None or not self.quote.previous_close or self.quote.previous_close <= 0:
            return None
        return self.quote.price / self.quote.previous_close - 1


@dataclass
class ValuationResult:
    portfolio: Portfolio
    entries: list[InvestmentValue] = field(default_factory=list)
    total: float = 0.0
    zero_valuation: bool = False

    @property
    def failures(self) -> list[InvestmentValue]:
        return [e for e in self.entries if not e.ok]

    @property
    def complete(self) -> bool:
        return not self.failures

    @property
    def all_failed(self) -> bool:
        return bool(self.entries) and len(self.failures) == len(self.entries)


class ValuationEngine:
    """Values portfolios using one provider for stocks and one for funds.

    Pass cache-backed providers (``CachedProvider``) so repeated lookups in a
    run hit the cache, and one ``CurrencyConverter`` per run so every
    instrument in a currency shares a rate.
    """

    def __init__(
        self,
        stocks: PriceProvider,
        funds: PriceProvider,
        converter: CurrencyConverter,
        pool: FetchPool | None = None,
    ):
        self.stocks = stocks
        self.funds = funds
        self.converter = converter
        self.pool = pool or FetchPool()

    def value(self, portfolio: Portfolio) -> ValuationResult:
        tasks = {
            idx: (lambda inv=inv: self._value_one(inv, portfolio.currency))
            for idx, inv in enumerate(portfolio.investments)
        }
        outcomes = self.pool.run(tasks)

        entries = []
        for idx, inv in enumerate(portfolio.investments):
            outcome = outcomes[idx]
            if outcome.ok:
                entries.append(outcome.value)
            else:
                logger.warning(f"Could not value {inv.label} in '{portfolio.name}': {outcome.error}")
                entries.append(InvestmentValue(investment=inv, error=outcome.error))

        return self.weigh(portfolio, entries)

    @staticmethod
    def weigh(portfolio: Portfolio, entries: list[InvestmentValue]) -> ValuationResult:
        """Sum valued entries and set each weight; a zero total zeroes every weight."""
        total = sum(e.value for e in entries if e.ok)
        zero = total == 0
        for entry in entries:
            entry.weight = 0.0 if zero or not entry.ok else entry.value / total
        if zero:
            logger.info(f"Portfolio '{portfolio.name}' has zero total value; weights reported as 0")
        return ValuationResult(portfolio=portfolio, entries=entries, total=total, zero_valuation=zero)

    def _value_one(self, investment: Investment, currency: str) -> InvestmentValue:
        match investment:
            case Stock(symbol=symbol, units=units):
                return self._priced(investment, self.stocks.fetch_quote(symbol), units, currency)
            case MutualFund(isin=isin, units=units):
                return self._priced(investment, self.funds.fetch_quote(isin), units, currency)
            case FixedDeposit(value=amount, currency=fd_currency):
                rate = self.converter.rate(fd_currency or currency, currency)
                return InvestmentValue(investment=investment, value=amount * rate, rate=rate)
            case _:
                raise TypeError(f"Unknown investment type: {type(investment).__name__}")

    def _priced(self, investment: Investment, quote: Quote, units: float, currency: str) -> InvestmentValue:
        rate = self.converter.rate(quote.currency, currency)
        return InvestmentValue(investment=investment, value=quote.price * units * rate, quote=quote, rate=rate)
