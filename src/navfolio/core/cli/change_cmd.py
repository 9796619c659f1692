"""navfolio change — price change over one or more ranges."""

from __future__ import annotations

import click

from navfolio.market.models import HistoryRange

RANGE_CHOICES = [r.value for r in HistoryRange]
DEFAULT_RANGES = ("1D", "1W", "1M", "1Y")


@click.command()
@click.option(
    "-r",
    "--range",
    "ranges",
    multiple=True,
    type=click.Choice(RANGE_CHOICES, case_sensitive=False),
    help="Range to report; repeat for several. Defaults to 1D, 1W, 1M and 1Y.",
)
@click.pass_obj
def change(options, ranges) -> None:
    """Show how each holding and the whole portfolio moved."""
    from navfolio.core.cli.common import build_app, exit_if_all_failed, make_console
    from navfolio.core.cli.render import render_changes

    app = build_app(options)
    console = make_console()
    selected = [HistoryRange.parse(r) for r in (ranges or DEFAULT_RANGES)]

    results = app.value_all()
    for result in results:
        render_changes(console, app.analytics.changes(result, selected))
    exit_if_all_failed(results)
