"""navfolio returns — CAGR and rolling returns."""

from __future__ import annotations

import click

from navfolio.market.models import HistoryRange

# CAGR is only reported over a year or longer
CAGR_RANGE_CHOICES = ["1Y", "3Y", "5Y", "MAX"]
ROLLING_WINDOW_CHOICES = ["1Y", "3Y", "5Y"]


@click.command()
@click.option(
    "-r",
    "--range",
    "history_range",
    default="3Y",
    show_default=True,
    type=click.Choice(CAGR_RANGE_CHOICES, case_sensitive=False),
    help="Period the CAGR is measured over.",
)
@click.option(
    "--rolling",
    type=click.Choice(ROLLING_WINDOW_CHOICES, case_sensitive=False),
    help="Also summarize rolling CAGRs over windows of this length.",
)
@click.option(
    "--stride",
    default=1,
    show_default=True,
    type=click.IntRange(min=1),
    help="Months between rolling windows.",
)
@click.pass_obj
def returns(options, history_range, rolling, stride) -> None:
    """Show annualized returns for each holding and the portfolio."""
    from navfolio.core.cli.common import build_app, exit_if_all_failed, make_console
    from navfolio.core.cli.render import render_returns

    app = build_app(options)
    console = make_console()
    rolling_window = HistoryRange.parse(rolling) if rolling else None

    results = app.value_all()
    for result in results:
        report = app.analytics.returns(result, HistoryRange.parse(history_range), rolling_window, stride)
        render_returns(console, report)
    exit_if_all_failed(results)
