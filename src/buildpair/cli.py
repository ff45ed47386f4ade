"""buildpair CLI - compare a before and an after build."""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path

import click
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from buildpair import __version__
from buildpair.config import (
    DEFAULT_CONFIG_FILENAME,
    RunConfig,
    load_config,
    parse_threshold,
    write_default_config,
)
from buildpair.context import RunContext
from buildpair.errors import BuildPairError
from buildpair.inspections import run_inspections, select_checks
from buildpair.manifest import load_manifest
from buildpair.peers.types import BuildSide, FavorRelease
from buildpair.results import Severity, report_to_dict, write_report

cli = typer.Typer(
    name="buildpair",
    help="buildpair - before/after build inspection",
    no_args_is_help=True,
)
console = Console()

THRESHOLD_CHOICES = ["ok", "info", "verify", "bad"]

SEVERITY_STYLES = {
    Severity.OK: "green",
    Severity.INFO: "cyan",
    Severity.VERIFY: "yellow",
    Severity.BAD: "bold red",
}


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _resolve_config(config: Path | None) -> RunConfig:
    if config is not None:
        return load_config(config)
    default = Path(DEFAULT_CONFIG_FILENAME)
    if default.exists():
        return load_config(default)
    return RunConfig()


@cli.callback(invoke_without_command=True)
def main(
    version: bool = typer.Option(False, "--version", help="Show version and exit"),
) -> None:
    """Inspect differences between two builds of the same package set."""
    if version:
        console.print(f"buildpair {__version__}")
        raise typer.Exit(0)


@cli.command(name="inspect")
def inspect_builds(
    after: Path = typer.Option(..., "--after", help="Manifest of the after build"),
    before: Path | None = typer.Option(
        None,
        "--before",
        help="Manifest of the before build (omit for a single build run)",
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        help=f"Run configuration (default ./{DEFAULT_CONFIG_FILENAME} when present)",
    ),
    threshold: str | None = typer.Option(
        None,
        "--threshold",
        click_type=click.Choice(THRESHOLD_CHOICES, case_sensitive=False),
        help="Failure threshold",
    ),
    favor_release: str | None = typer.Option(
        None,
        "--favor-release",
        click_type=click.Choice([mode.value for mode in FavorRelease], case_sensitive=False),
        help="Duplicate package tie-break",
    ),
    workers: int | None = typer.Option(None, "--workers", min=1, help="Parallel inspection workers"),
    checks: list[str] = typer.Option([], "--check", help="Inspection to run (repeatable, default all)"),
    json_out: Path | None = typer.Option(None, "--json", help="Write the report as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging and OK findings"),
) -> None:
    """Correlate two builds, run inspections and report a verdict."""
    _setup_logging(verbose)

    try:
        run_config = _resolve_config(config)
        overrides = {}
        if threshold is not None:
            overrides["threshold"] = parse_threshold(threshold)
        if favor_release is not None:
            overrides["favor_release"] = FavorRelease.parse(favor_release)
        if workers is not None:
            overrides["workers"] = workers
        run_config = dataclasses.replace(run_config, **overrides)
        selected = select_checks(checks)
    except (BuildPairError, ValueError, KeyError) as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(1) from exc

    with RunContext.create(run_config) as ctx:
        try:
            before_snapshots = load_manifest(before, BuildSide.BEFORE, ctx.cache) if before else []
            after_snapshots = load_manifest(after, BuildSide.AFTER, ctx.cache)
        except BuildPairError as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}")
            raise typer.Exit(1) from exc

        ctx.correlate(before_snapshots, after_snapshots)
        outcomes = run_inspections(ctx, selected)

        _print_findings(ctx, verbose)
        _print_outcomes(outcomes)

        payload = report_to_dict(ctx.aggregator, run_config.threshold)
        payload["inspections"] = dict(sorted(outcomes.items()))
        if json_out is not None:
            write_report(json_out, payload)
            console.print(f"[cyan]JSON:[/cyan] {json_out}")

        worst = ctx.aggregator.worst_severity()
        if ctx.aggregator.passes(run_config.threshold):
            console.print(f"[green]✓ Passed[/green] (worst: {worst.label}, threshold: {run_config.threshold.label})")
            raise typer.Exit(0)

        console.print(f"[red]✗ Failed[/red] (worst: {worst.label}, threshold: {run_config.threshold.label})")
        raise typer.Exit(2)


def _print_findings(ctx: RunContext, verbose: bool) -> None:
    findings = [
        finding for finding in ctx.aggregator
        if verbose or finding.severity is not Severity.OK
    ]
    if not findings:
        console.print("[green]No findings[/green]")
        return

    table = Table(title="Findings")
    table.add_column("Severity")
    table.add_column("Inspection")
    table.add_column("Verb")
    table.add_column("Noun")
    table.add_column("Message")
    table.add_column("Waiver")
    for finding in findings:
        style = SEVERITY_STYLES.get(finding.severity, "")
        table.add_row(
            f"[{style}]{finding.severity.label}[/{style}]" if style else finding.severity.label,
            finding.header,
            finding.verb.value,
            finding.noun,
            finding.msg,
            finding.waiver_authority.value,
        )
    console.print(table)


def _print_outcomes(outcomes: dict[str, bool]) -> None:
    for name, passed in outcomes.items():
        marker = "[green]✓[/green]" if passed else "[red]✗[/red]"
        console.print(f"{marker} {name}")


@cli.command(name="init-config")
def init_config(
    path: Path = typer.Option(Path(DEFAULT_CONFIG_FILENAME), "--path", help="Where to write the config"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing config"),
) -> None:
    """Write the default run configuration."""
    try:
        created = write_default_config(path, force=force)
    except FileExistsError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        console.print("[yellow]Use --force to overwrite.[/yellow]")
        raise typer.Exit(1) from exc

    console.print("[green]✓ Config initialized[/green]")
    console.print(f"[cyan]Path:[/cyan] {created}")


@cli.command(name="resolve")
def resolve_policy(
    name: str = typer.Argument(..., help="Package name"),
    version: str = typer.Argument(..., help="Package version"),
    release: str = typer.Argument(..., help="Package release"),
    config: Path | None = typer.Option(None, "--config", help="Run configuration"),
) -> None:
    """Show which security rule applies to a package version."""
    try:
        run_config = _resolve_config(config)
    except BuildPairError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(1) from exc

    with RunContext.create(run_config) as ctx:
        resolved = ctx.resolver.resolve(name, version, release)
        if resolved is None:
            console.print(f"No security rule for {name}-{version}-{release}; global waiver policy applies")
            return

        console.print(f"[cyan]Rule:[/cyan] {name} {resolved.rule.pattern} ({resolved.rule.specificity.name.lower()})")
        for severity, authority in sorted(resolved.rule.waivers.items()):
            console.print(f"  {severity.label}: {authority.value}")


if __name__ == "__main__":
    cli()
