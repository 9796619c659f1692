"""Portfolio models, valuation and analytics."""

from .analytics import AnalyticsEngine, AssetCategory, RollingReturns
from .fetch import FetchPool
from .loader import load_portfolios
from .models import FixedDeposit, Investment, MutualFund, Portfolio, Stock
from .valuation import InvestmentValue, ValuationEngine, ValuationResult

__all__ = [
    "AnalyticsEngine",
    "AssetCategory",
    "FetchPool",
    "FixedDeposit",
    "Investment",
    "InvestmentValue",
    "MutualFund",
    "Portfolio",
    "RollingReturns",
    "Stock",
    "ValuationEngine",
    "ValuationResult",
    "load_portfolios",
]
