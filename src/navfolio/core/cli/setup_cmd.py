"""navfolio setup — write an example configuration."""

from __future__ import annotations

import click
import yaml

EXAMPLE_CONFIG = {
    "currency": "USD",
    "portfolios": [
        {
            "name": "Core",
            "investments": [
                {"symbol": "AAPL", "units": 10},
                {"symbol": "VTI", "units": 5, "category": "Equity"},
                {"name": "Emergency FD", "value": 5000},
            ],
        },
        {
            "name": "India",
            "currency": "INR",
            "investments": [
                {"isin": "INF179K01BE2", "units": 100},
                {"symbol": "RELIANCE.NS", "units": 20},
            ],
        },
    ],
    "cache": {"ttl": {"quote": "1h", "history": "12h", "metadata": "7d", "fx": "6h"}},
    "fetch": {"max_workers": 8, "timeout": 60, "retries": 2},
}


@click.command()
@click.option("--force", is_flag=True, help="Overwrite an existing config file.")
@click.pass_obj
def setup(options, force) -> None:
    """Set up navfolio by writing an example config to edit."""
    from navfolio.core.cli.common import fail, resolve_config_path

    path = resolve_config_path(options, must_exist=False)
    if path.exists() and not force:
        fail(f"Config already exists at {path}. Use --force to overwrite it.")

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.dump(EXAMPLE_CONFIG, f, default_flow_style=False, sort_keys=False)
    click.echo(f"  Config: {path}")
    click.echo("Edit it to list your holdings, then run 'navfolio summary'.")
