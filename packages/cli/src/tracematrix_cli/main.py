"""tracematrix CLI - Main entry point."""

from __future__ import annotations

import asyncio
import logging
import sys
from dataclasses import replace
from pathlib import Path

import click
import structlog
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn

from tracematrix_cli import __version__
from tracematrix_cli.formatter import format_result
from tracematrix_core.config import (
    EXAMPLE_CONFIG,
    STATUS_FILTERS,
    MatrixConfig,
    load_config,
    parse_config,
    parse_direction,
    parse_source_kinds,
)
from tracematrix_core.errors import TraceabilityError
from tracematrix_core.matrix import MatrixOptions, generate_matrix
from tracematrix_core.models import MatrixResult, TraceDirection
from tracematrix_core.settings import Settings
from tracematrix_core.tracker import GitHubTrackerClient

console = Console()
err_console = Console(stderr=True)


def _stderr_logger(*args: object) -> structlog.PrintLogger:
    # Resolve sys.stderr per call so redirected streams are honoured
    return structlog.PrintLogger(file=sys.stderr)


def configure_logging(verbose: bool) -> None:
    """Send structlog output to stderr so JSON on stdout stays clean."""
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if verbose else logging.WARNING
        ),
        logger_factory=_stderr_logger,
    )


@click.group()
@click.version_option(version=__version__, prog_name="tracematrix")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """tracematrix - requirements traceability for GitHub projects.

    Links issues, milestones, pull requests, and labels into a
    traceability matrix with coverage and impact analysis.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(verbose)


def _apply_overrides(
    cfg: MatrixConfig,
    direction: str | None,
    kinds: tuple[str, ...],
    status: str | None,
    labels: tuple[str, ...],
    milestones: tuple[str, ...],
) -> MatrixConfig:
    """Merge command-line flags over file configuration and re-validate."""
    merged = replace(cfg)
    if direction:
        merged.direction = parse_direction(direction)
    if kinds:
        merged.source_kinds = parse_source_kinds(list(kinds))
    if status:
        merged.filter_status = status
    if labels:
        merged.filter_labels = list(labels)
    if milestones:
        merged.filter_milestones = list(milestones)
    merged.validate()
    return merged


async def _run_generate(settings: Settings, cfg: MatrixConfig) -> MatrixResult:
    async with GitHubTrackerClient.from_settings(settings, per_page=cfg.per_page) as client:
        return await generate_matrix(client, MatrixOptions.from_config(cfg))


@cli.command()
@click.argument("path", type=click.Path(exists=True), default=".")
@click.option("--config", "-c", type=click.Path(exists=True), help="Path to .tracematrix.yml")
@click.option("--owner", help="Repository owner (overrides GITHUB_OWNER)")
@click.option("--repo", help="Repository name (overrides GITHUB_REPO)")
@click.option("--format", "-f", "output_format",
              type=click.Choice(["rich", "json"]),
              default="rich", help="Output format")
@click.option("--direction", "-d",
              type=click.Choice([d.value for d in TraceDirection]),
              help="Traceability direction")
@click.option("--kind", "-k", "kinds", multiple=True,
              help="Source kind to include (repeatable): issues, milestones, pull_requests, labels")
@click.option("--status", type=click.Choice(list(STATUS_FILTERS)), help="Record state filter")
@click.option("--label", "labels", multiple=True, help="Only include issues with this label")
@click.option("--milestone", "milestones", multiple=True,
              help="Only include issues in this milestone")
@click.option("--output", "-o", type=click.Path(), help="Write JSON result to a file")
@click.option("--fail-under", type=click.IntRange(0, 100),
              help="Exit with error if coverage is below this percentage")
@click.pass_context
def generate(
    ctx: click.Context,
    path: str,
    config: str | None,
    owner: str | None,
    repo: str | None,
    output_format: str,
    direction: str | None,
    kinds: tuple[str, ...],
    status: str | None,
    labels: tuple[str, ...],
    milestones: tuple[str, ...],
    output: str | None,
    fail_under: int | None,
) -> None:
    """Generate a traceability matrix.

    Examples:

        tracematrix generate                          # Use .tracematrix.yml in cwd
        tracematrix generate --owner acme --repo api
        tracematrix generate -k issues -k milestones -d forward
        tracematrix generate -f json > matrix.json
        tracematrix generate --fail-under 80          # CI gate
    """
    verbose = ctx.obj.get("verbose", False)

    try:
        cfg = load_config(Path(config) if config else Path(path))
        cfg = _apply_overrides(cfg, direction, kinds, status, labels, milestones)

        settings = Settings()
        if owner:
            settings.GITHUB_OWNER = owner
        if repo:
            settings.GITHUB_REPO = repo

        if verbose:
            err_console.print(f"[dim]Repository: {settings.repository}[/dim]")
            err_console.print(
                f"[dim]Sources: {', '.join(k.value for k in cfg.source_kinds)}[/dim]"
            )

        if output_format == "json":
            result = asyncio.run(_run_generate(settings, cfg))
        else:
            console.print(Panel.fit(
                "[bold blue]tracematrix[/bold blue] - Traceability Matrix",
                subtitle=settings.repository,
            ))
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
                transient=True,
            ) as progress:
                progress.add_task("Reading tracker records...", total=None)
                result = asyncio.run(_run_generate(settings, cfg))
    except TraceabilityError as e:
        err_console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    if output:
        Path(output).write_text(result.to_json())
        if output_format != "json":
            console.print(f"[dim]Wrote {output}[/dim]")

    if output_format == "json":
        click.echo(result.to_json())
    else:
        format_result(console, result)

    if fail_under is not None and result.summary.coverage_percentage < fail_under:
        err_console.print(
            f"[red]❌ Coverage {result.summary.coverage_percentage}% "
            f"is below {fail_under}%[/red]"
        )
        sys.exit(1)


@cli.command("validate-config")
@click.option("--config", "-c", type=click.Path(), help="Path to .tracematrix.yml")
def validate_config(config: str | None) -> None:
    """Validate configuration file.

    Checks .tracematrix.yml for invalid source kinds, directions, and filters.
    """
    config_path = Path(config) if config else Path(".") / ".tracematrix.yml"

    if not config_path.exists():
        console.print(f"[red]Config file not found: {config_path}[/red]")
        console.print("Run [bold]tracematrix init[/bold] to create one")
        sys.exit(1)

    try:
        cfg = parse_config(config_path.read_text())
    except TraceabilityError as e:
        console.print("[red]Configuration errors:[/red]")
        console.print(f"  ✗ {e}")
        sys.exit(1)

    console.print(f"Sources:   {', '.join(k.value for k in cfg.source_kinds)}")
    console.print(f"Direction: {cfg.direction.value}")
    console.print("[green]✓ Configuration is valid[/green]")


@cli.command()
@click.option("--force", "-f", is_flag=True, help="Overwrite existing config")
def init(force: bool) -> None:
    """Initialize tracematrix configuration.

    Creates a .tracematrix.yml file with the default settings.
    """
    config_path = Path(".") / ".tracematrix.yml"

    if config_path.exists() and not force:
        console.print(f"[yellow]Config already exists: {config_path}[/yellow]")
        console.print("Use --force to overwrite")
        return

    config_path.write_text(EXAMPLE_CONFIG.lstrip())
    console.print(f"[green]✓ Created {config_path}[/green]")
    console.print("\nNext steps:")
    console.print("  1. Set GITHUB_TOKEN, GITHUB_OWNER and GITHUB_REPO")
    console.print("  2. Run [bold]tracematrix generate[/bold]")


def main() -> None:
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
