"""Core infrastructure: configuration, caching, HTTP transport and errors."""
