"""
navfolio exception hierarchy.

All navfolio exceptions inherit from NavfolioError, making it easy for callers
to catch library-level errors while still distinguishing specific failure modes.

Provider errors carry a ``retryable`` flag so retry policies can decide
without isinstance chains.
"""


class NavfolioError(Exception):
    """Base exception class for all navfolio errors."""


class ConfigurationError(NavfolioError):
    """Raised for structural config errors (missing keys, invalid values)."""


# Provider failures


class ProviderError(NavfolioError):
    """Raised when a price/metadata provider call fails."""

    retryable = False


class InvalidIdentifier(ProviderError):
    """Raised before any network attempt when a symbol or ISIN is malformed."""


class NotFound(ProviderError):
    """Raised when the provider does not know the requested identifier."""


class RateLimited(ProviderError):
    """Raised when the provider throttles us. Safe to retry after backoff."""

    retryable = True


class Unavailable(ProviderError):
    """Raised for transient network, timeout and parse failures."""

    retryable = True


class SchemaChanged(ProviderError):
    """Raised when a response parses but its shape is not what we expect."""


# Cache failures


class CacheError(NavfolioError):
    """Raised for caching errors."""


class CacheCorrupt(CacheError):
    """Raised when a stored entry cannot be decoded. Callers treat it as a miss."""


# Analytics failures


class AnalyticsError(NavfolioError):
    """Raised when a metric cannot be computed from the available data."""


class InsufficientHistory(AnalyticsError):
    """Raised when a series is too short to span the requested period."""


class NoData(AnalyticsError):
    """Raised when no price exists at or before the requested anchor date."""
