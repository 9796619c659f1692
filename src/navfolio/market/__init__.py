"""Market data: models, provider clients and caching."""

from .amfi import AmfiProvider
from .base import PriceProvider
from .cached import CachedProvider
from .currency import CurrencyConverter
from .models import HistoryRange, Metadata, PricePoint, Quote, Series
from .yahoo import YahooProvider

__all__ = [
    "AmfiProvider",
    "CachedProvider",
    "CurrencyConverter",
    "HistoryRange",
    "Metadata",
    "PricePoint",
    "PriceProvider",
    "Quote",
    "Series",
    "YahooProvider",
]
