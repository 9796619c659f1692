"""navfolio alloc — allocation by asset category."""

from __future__ import annotations

import click


@click.command()
@click.pass_obj
def alloc(options) -> None:
    """Show how the portfolio splits across asset categories."""
    from navfolio.core.cli.common import build_app, exit_if_all_failed, make_console
    from navfolio.core.cli.render import render_allocation

    app = build_app(options)
    console = make_console()

    results = app.value_all()
    for result in results:
        render_allocation(console, app.analytics.allocation(result))
    exit_if_all_failed(results)
