"""navfolio CLI — entry point for summary, change, returns, fees, alloc, setup and cache commands."""

import click

from navfolio import __version__

from .common import CliOptions


@click.group()
@click.version_option(version=__version__, package_name="navfolio")
@click.option("--refresh", is_flag=True, help="Ignore cached data and refetch everything.")
@click.option(
    "-c",
    "--config-path",
    type=click.Path(dir_okay=False),
    help="Path to a config file.",
)
@click.option("-n", "--config-name", help="Config name, resolved to ~/.navfolio/NAME.yaml.")
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr.")
@click.option("--timeout", type=click.FloatRange(min=0, min_open=True), help="Seconds to wait for all fetches.")
@click.pass_context
def main(ctx, refresh, config_path, config_name, verbose, timeout) -> None:
    """navfolio — track portfolio value and performance from the terminal."""
    if config_path and config_name:
        raise click.UsageError("--config-path and --config-name are mutually exclusive")

    from navfolio.core.utils.logging import setup_logging

    setup_logging(verbose=verbose)
    ctx.obj = CliOptions(
        refresh=refresh,
        config_path=config_path,
        config_name=config_name,
        verbose=verbose,
        timeout=timeout,
    )


# Register subcommands
from .alloc_cmd import alloc
from .cache_cmd import cache
from .change_cmd import change
from .fees_cmd import fees
from .returns_cmd import returns
from .setup_cmd import setup
from .summary_cmd import summary

main.add_command(summary)
main.add_command(change)
main.add_command(returns)
main.add_command(fees)
main.add_command(alloc)
main.add_command(setup)
main.add_command(cache)
