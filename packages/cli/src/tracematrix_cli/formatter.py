"""Output formatting for CLI."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from tracematrix_core.models import CoverageReport, ImpactReport, MatrixResult

PRIORITY_STYLE = {
    "critical": "bold red",
    "high": "red",
    "medium": "yellow",
    "low": "blue",
}


def _coverage_style(value: int, warn_below: int = 70, praise_above: int = 90) -> str:
    if value < warn_below:
        return "red"
    if value > praise_above:
        return "green"
    return "yellow"


def format_summary(console: Console, result: MatrixResult) -> None:
    """Format and display the matrix summary."""
    summary = result.summary
    meta = result.metadata

    table = Table(title=meta.title, show_header=True, header_style="bold")
    table.add_column("Metric", style="dim")
    table.add_column("Value", justify="right")

    table.add_row("Repository", meta.repository)
    table.add_row("Direction", meta.direction.value)
    table.add_row("", "")
    table.add_row("Requirements", str(summary.total_requirements))
    table.add_row("  Issues", str(summary.total_issues))
    table.add_row("  Milestones", str(summary.total_milestones))
    table.add_row("  Implementations", str(summary.total_implementations))
    table.add_row("  Categories", str(summary.total_categories))
    table.add_row("Mappings", str(summary.total_mappings))

    if result.coverage is not None:
        style = _coverage_style(summary.coverage_percentage)
        table.add_row(
            "[bold]Coverage[/bold]",
            f"[{style}]{summary.coverage_percentage}%[/{style}]",
        )

    if result.graph is not None:
        stats = result.graph.statistics
        table.add_row("Graph density", f"{stats.density:.3f}")
        table.add_row("Average degree", f"{stats.average_degree:.2f}")

    console.print(table)


def format_coverage(console: Console, coverage: CoverageReport, limit: int = 10) -> None:
    """Format and display coverage gaps, orphans, and recommendations."""
    if not coverage.gaps and not coverage.orphans:
        console.print("\n[green]✓ Every requirement is traced[/green]")
    else:
        for heading, refs in (("Gaps", coverage.gaps), ("Orphans", coverage.orphans)):
            if not refs:
                continue
            console.print(f"\n[bold]{heading} ({len(refs)}):[/bold]")
            for ref in refs[:limit]:
                style = PRIORITY_STYLE.get(ref.priority.value, "")
                console.print(
                    f"  [{style}]{ref.priority.value:<8}[/{style}] {ref.id}  {ref.title}"
                )
            if len(refs) > limit:
                console.print(f"  [dim]... and {len(refs) - limit} more[/dim]")

    if coverage.recommendations:
        console.print("\n[bold]Recommendations:[/bold]")
        for recommendation in coverage.recommendations:
            console.print(f"  • {recommendation}")


def format_impact(console: Console, impact: ImpactReport) -> None:
    """Format and display high-impact and critical-path requirements."""
    if not impact.high_impact and not impact.critical_path:
        return

    table = Table(title="Change Impact", show_header=True, header_style="bold")
    table.add_column("Requirement")
    table.add_column("In", justify="right")
    table.add_column("Out", justify="right")
    table.add_column("Weight", justify="right")
    table.add_column("Flags", style="dim")

    critical_ids = {node.id for node in impact.critical_path}
    rows = list(impact.high_impact) + [
        node for node in impact.critical_path if node not in impact.high_impact
    ]
    high_ids = {node.id for node in impact.high_impact}
    for node in rows:
        flags = []
        if node.id in high_ids:
            flags.append("high-impact")
        if node.id in critical_ids:
            flags.append("critical-path")
        table.add_row(
            node.id,
            str(node.incoming),
            str(node.outgoing),
            str(node.total_weight),
            ", ".join(flags),
        )

    console.print()
    console.print(table)


def format_result(console: Console, result: MatrixResult) -> None:
    """Display every section present in ``result``."""
    format_summary(console, result)
    if result.coverage is not None:
        format_coverage(console, result.coverage)
    if result.impact is not None:
        format_impact(console, result.impact)
