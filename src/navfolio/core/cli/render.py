"""rich table rendering for command results.

Missing numbers always render as "N/A"; the reason is listed under the table.
"""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from navfolio.portfolio.analytics import AllocationReport, ChangeReport, FeeReport, ReturnsReport, weighted_change
from navfolio.portfolio.models import FixedDeposit
from navfolio.portfolio.valuation import InvestmentValue, ValuationResult

NA = "N/A"


def fmt_money(value: float | None) -> str:
    return NA if value is None else f"{value:,.2f}"


def fmt_pct(value: float | None, digits: int = 2) -> str:
    return NA if value is None else f"{value * 100:.{digits}f}%"


def fmt_signed_pct(value: float | None) -> str:
    if value is None:
        return NA
    style = "green" if value >= 0 else "red"
    return f"[{style}]{value * 100:+.2f}%[/{style}]"


def _title(result: ValuationResult, what: str) -> str:
    return f"{result.portfolio.name} — {what} ({result.portfolio.currency})"


def _units(entry: InvestmentValue) -> str:
    if isinstance(entry.investment, FixedDeposit):
        return "-"
    return f"{entry.investment.units:,.4f}".rstrip("0").rstrip(".")


def _notes(console: Console, problems: list[tuple[str, object]]) -> None:
    for label, error in problems:
        console.print(f"[yellow]  {label}: {error}[/yellow]")


def render_summary(console: Console, result: ValuationResult) -> None:
    table = Table(title=_title(result, "Summary"))
    table.add_column("Investment")
    table.add_column("Name")
    table.add_column("Units", justify="right", no_wrap=True)
    table.add_column("Price", justify="right", no_wrap=True)
    table.add_column("Day", justify="right", no_wrap=True)
    table.add_column("Value", justify="right", no_wrap=True)
    table.add_column("Weight", justify="right", no_wrap=True)

    for entry in result.entries:
        price = f"{entry.quote.price:,.2f} {entry.quote.currency}" if entry.quote else "-"
        if not entry.ok:
            price = NA
        table.add_row(
            entry.label,
            entry.name or "",
            _units(entry),
            price,
            "-" if entry.ok and entry.quote is None else fmt_signed_pct(entry.day_change),
            fmt_money(entry.value),
            fmt_pct(entry.weight if entry.ok and not result.zero_valuation else None),
        )
    table.add_section()
    total_label = "Total" if result.complete else "Total (partial)"
    day = weighted_change((e.weight, e.day_change) for e in result.entries if e.ok)
    table.add_row(
        f"[bold]{total_label}[/bold]", "", "", "", fmt_signed_pct(day), f"[bold]{fmt_money(result.total)}[/bold]", ""
    )

    console.print(table)
    if result.zero_valuation:
        console.print("[yellow]  Portfolio total is zero; weights are not meaningful.[/yellow]")
    _notes(console, [(e.label, e.error) for e in result.failures])
    console.print()


def render_changes(console: Console, report: ChangeReport) -> None:
    table = Table(title=_title(report.valuation, "Change"))
    table.add_column("Investment")
    table.add_column("Weight", justify="right", no_wrap=True)
    for r in report.ranges:
        table.add_column(r.value, justify="right", no_wrap=True)

    for row in report.rows:
        table.add_row(
            row.entry.label,
            fmt_pct(row.entry.weight if row.entry.ok else None),
            *(fmt_signed_pct(row.changes[r]) for r in report.ranges),
        )
    table.add_section()
    table.add_row("[bold]Portfolio[/bold]", "", *(fmt_signed_pct(report.portfolio[r]) for r in report.ranges))

    console.print(table)
    problems = []
    for row in report.rows:
        if not row.entry.ok:
            problems.append((row.entry.label, row.entry.error))
            continue
        if isinstance(row.entry.investment, FixedDeposit):
            continue
        problems.extend((f"{row.entry.label} {r.value}", err) for r, err in row.errors.items())
    _notes(console, problems)
    console.print()


def render_returns(console: Console, report: ReturnsReport) -> None:
    table = Table(title=_title(report.valuation, f"Returns over {report.history_range.value}"))
    table.add_column("Investment")
    table.add_column("Weight", justify="right", no_wrap=True)
    table.add_column("CAGR", justify="right", no_wrap=True)
    rolling = report.rolling_window
    if rolling is not None:
        for heading in ("Min", "Median", "Max", "Positive", "Windows"):
            table.add_column(f"{rolling.value} {heading}", justify="right", no_wrap=True)

    for row in report.rows:
        cells = [row.entry.label, fmt_pct(row.entry.weight if row.entry.ok else None), fmt_signed_pct(row.cagr)]
        if rolling is not None:
            s = row.rolling
            cells += [
                fmt_signed_pct(s.minimum if s else None),
                fmt_signed_pct(s.median if s else None),
                fmt_signed_pct(s.maximum if s else None),
                fmt_pct(s.positive_share if s else None, digits=0),
                str(s.count) if s else NA,
            ]
        table.add_row(*cells)
    table.add_section()
    table.add_row("[bold]Portfolio[/bold]", "", fmt_signed_pct(report.portfolio_cagr))

    console.print(table)
    _notes(
        console,
        [
            (row.entry.label, row.error)
            for row in report.rows
            if row.error is not None and not isinstance(row.entry.investment, FixedDeposit)
        ],
    )
    console.print()


def render_fees(console: Console, report: FeeReport) -> None:
    table = Table(title=_title(report.valuation, "Expense ratios"))
    table.add_column("Investment")
    table.add_column("Name")
    table.add_column("Weight", justify="right", no_wrap=True)
    table.add_column("Expense ratio", justify="right", no_wrap=True)

    for row in report.rows:
        if isinstance(row.entry.investment, FixedDeposit):
            ratio = "-"
        else:
            ratio = "Unknown" if row.expense_ratio is None else f"{row.expense_ratio:.2f}%"
        table.add_row(row.entry.label, row.name or "", fmt_pct(row.entry.weight if row.entry.ok else None), ratio)
    table.add_section()
    portfolio_ratio = "Unknown" if report.portfolio_ratio is None else f"{report.portfolio_ratio:.2f}%"
    table.add_row("[bold]Portfolio[/bold]", "", fmt_pct(report.covered_weight), portfolio_ratio)

    console.print(table)
    if report.portfolio_ratio is not None and report.covered_weight < 1:
        console.print(f"  Weighted over the {fmt_pct(report.covered_weight)} of holdings with a known ratio.")
    _notes(console, [(row.entry.label, row.error) for row in report.rows if row.error is not None])
    console.print()


def render_allocation(console: Console, report: AllocationReport) -> None:
    table = Table(title=_title(report.valuation, "Allocation"))
    table.add_column("Category")
    table.add_column("Value", justify="right", no_wrap=True)
    table.add_column("Share", justify="right", no_wrap=True)
    table.add_column("Holdings")

    for share in report.shares:
        table.add_row(share.category, fmt_money(share.value), fmt_pct(share.share), ", ".join(share.holdings))

    console.print(table)
    _notes(console, [(e.label, e.error) for e in report.valuation.failures])
    console.print()

