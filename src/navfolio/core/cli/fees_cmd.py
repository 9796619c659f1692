"""navfolio fees — expense ratios."""

from __future__ import annotations

import click


@click.command()
@click.pass_obj
def fees(options) -> None:
    """Show expense ratios and the portfolio's weighted expense ratio."""
    from navfolio.core.cli.common import build_app, exit_if_all_failed, make_console
    from navfolio.core.cli.render import render_fees

    app = build_app(options)
    console = make_console()

    results = app.value_all()
    for result in results:
        render_fees(console, app.analytics.fees(result))
    exit_if_all_failed(results)
