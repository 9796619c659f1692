"""navfolio cache — manage cached market data."""

from __future__ import annotations

import click


@click.group()
def cache() -> None:
    """Manage the on-disk market data cache."""


@cache.command()
@click.pass_obj
def clear(options) -> None:
    """Delete every cached quote, history and metadata entry."""
    from navfolio.core.cli.common import NAVFOLIO_DIR, fail, load_config, resolve_config_path
    from navfolio.core.config import Config
    from navfolio.core.exceptions import ConfigurationError
    from navfolio.core.storage import DiskStore

    try:
        if resolve_config_path(options).exists():
            config = load_config(options)
        else:
            config = Config(data_dir=str(NAVFOLIO_DIR))
    except ConfigurationError as e:
        fail(str(e))

    removed = DiskStore(config.get("paths.cache_dir")).clear()
    click.echo(f"Removed {removed} cached entr{'y' if removed == 1 else 'ies'}.")
