"""navfolio summary — current value and weight of every holding."""

from __future__ import annotations

import click


@click.command()
@click.pass_obj
def summary(options) -> None:
    """Show the current value and weight of each holding."""
    from navfolio.core.cli.common import build_app, exit_if_all_failed, make_console
    from navfolio.core.cli.render import render_summary

    app = build_app(options)
    console = make_console()

    results = app.value_all()
    for result in results:
        render_summary(console, result)
    exit_if_all_failed(results)
