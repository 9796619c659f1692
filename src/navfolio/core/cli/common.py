"""Shared setup logic for CLI commands."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

import click

from navfolio.core.config import Config
from navfolio.core.exceptions import ConfigurationError

NAVFOLIO_DIR = Path.home() / ".navfolio"
DEFAULT_CONFIG_NAME = "config"


@dataclass
class CliOptions:
    """Global flags, passed to every subcommand as the click context object."""

    refresh: bool = False
    config_path: str | None = None
    config_name: str | None = None
    verbose: bool = False
    timeout: float | None = None


def fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def resolve_config_path(options: CliOptions, must_exist: bool = True) -> Path:
    """Config file selected by --config-path / --config-name, else ~/.navfolio/config.yaml."""
    if options.config_path:
        return Path(options.config_path).expanduser()

    name = options.config_name or DEFAULT_CONFIG_NAME
    candidates = [NAVFOLIO_DIR / f"{name}.yaml", NAVFOLIO_DIR / f"{name}.yml"]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    if must_exist and options.config_name:
        raise ConfigurationError(f"No config named '{name}' in {NAVFOLIO_DIR} (looked for .yaml and .yml)")
    return candidates[0]


def load_config(options: CliOptions) -> Config:
    path = resolve_config_path(options)
    if not path.exists():
        raise ConfigurationError(f"No configuration found at {path}. Run 'navfolio setup' first.")
    return Config(config_file=str(path), data_dir=str(NAVFOLIO_DIR))


def make_providers(config: Config):
    """Build the uncached (stock, fund) providers from config."""
    from navfolio.core.http import RetryPolicy
    from navfolio.market import AmfiProvider, YahooProvider

    retry = RetryPolicy(
        retries=config.get_int("fetch.retries", 2),
        delay=config.get_float("fetch.retry_delay", 0.5),
    )
    timeout = config.get_float("fetch.request_timeout", 15)
    yahoo = YahooProvider(config.get("providers.yahoo.base_url"), retry=retry, timeout=timeout)
    amfi = AmfiProvider(
        config.get("providers.amfi.base_url"),
        metadata_url=config.get("providers.amfi.metadata_url"),
        retry=retry,
        timeout=timeout,
    )
    return yahoo, amfi


def make_console():
    from rich.console import Console

    return Console()


@dataclass
class App:
    """Everything a command needs for one run, wired from config."""

    config: Config
    portfolios: list = field(default_factory=list)
    cache: object = None
    valuation: object = None
    analytics: object = None

    def value_all(self):
        return [self.valuation.value(p) for p in self.portfolios]


def build_app(options: CliOptions) -> App:
    """Load config and portfolios and wire cache, providers and engines.

    Exits with status 1 on any configuration error.
    """
    from navfolio.core.cache import Cache, TtlPolicy
    from navfolio.core.storage import DiskStore
    from navfolio.core.utils.logging import setup_logging
    from navfolio.market import CachedProvider, CurrencyConverter
    from navfolio.portfolio import AnalyticsEngine, FetchPool, ValuationEngine, load_portfolios

    try:
        config = load_config(options)
        if options.timeout is not None:
            config.set("fetch.timeout", options.timeout)
        portfolios = load_portfolios(config)
        config.ensure_directories()
        setup_logging(
            verbose=options.verbose,
            log_file=os.path.join(os.path.expanduser(config.get("paths.log_dir")), "navfolio.log"),
        )

        cache = Cache(DiskStore(config.get("paths.cache_dir")))
        ttl_policy = TtlPolicy.from_config(config)
        yahoo, amfi = make_providers(config)
        stocks = CachedProvider(yahoo, cache, ttl_policy, force_refresh=options.refresh)
        funds = CachedProvider(amfi, cache, ttl_policy, force_refresh=options.refresh)

        timeout = config.get_float("fetch.timeout", 60)
        # One pool, and so one deadline, for every batch the command runs
        pool = FetchPool(max_workers=config.get_int("fetch.max_workers", 8), timeout=timeout)
    except ConfigurationError as e:
        fail(str(e))
    except ValueError as e:
        fail(f"Invalid configuration: {e}")

    return App(
        config=config,
        portfolios=portfolios,
        cache=cache,
        valuation=ValuationEngine(stocks, funds, CurrencyConverter(stocks), pool),
        analytics=AnalyticsEngine(stocks, funds, pool),
    )


def exit_if_all_failed(results) -> None:
    """Exit non-zero when no instrument in any portfolio could be valued."""
    entries = [entry for result in results for entry in result.entries]
    if entries and all(not entry.ok for entry in entries):
        fail("every instrument failed to load")
