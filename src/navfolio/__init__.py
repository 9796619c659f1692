"""navfolio: portfolio valuation and performance analytics over cached market data."""

__version__ = "0.1.0"
