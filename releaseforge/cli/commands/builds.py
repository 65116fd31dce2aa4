"""``releaseforge import-build`` and ``releaseforge builds``: registry access."""

from __future__ import annotations

from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from releaseforge.config import settings
from releaseforge.core.build_registry import BuildRegistryError, SQLiteBuildRegistry
from releaseforge.core.repository import FileSystemRepository
from releaseforge.models.build import DetailedBuild

console = Console()


def _registry(root: Path | None, registry: Path | None) -> SQLiteBuildRegistry:
    store = FileSystemRepository(
        root or settings.repository_root,
        layouts=settings.repository_layouts,
        default_layout=settings.default_layout,
    )
    return SQLiteBuildRegistry(registry or settings.registry_path, store)


def import_build_cmd(
    build_file: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        help="Build-info JSON document to record.",
    ),
    root: Path = typer.Option(None, "--root", "-r", help="Repository root directory."),
    registry: Path = typer.Option(
        None, "--registry", help="Path to the build registry SQLite database."
    ),
) -> None:
    """Record a staged build-info document in the registry."""
    try:
        build = DetailedBuild.model_validate_json(build_file.read_text(encoding="utf-8"))
    except ValidationError as exc:
        console.print(f"[bold red]Invalid build info:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1)

    try:
        _registry(root, registry).save(build)
    except BuildRegistryError as exc:
        console.print(f"[bold red]{escape(str(exc))}[/bold red]")
        raise typer.Exit(code=1)

    console.print(
        f"[bold green]Recorded build {build}[/bold green] "
        f"({len(build.modules)} module(s), started {build.started})"
    )


def builds_cmd(
    build_name: str = typer.Argument(..., help="Build name to list."),
    root: Path = typer.Option(None, "--root", "-r", help="Repository root directory."),
    registry: Path = typer.Option(
        None, "--registry", help="Path to the build registry SQLite database."
    ),
) -> None:
    """List the recorded runs of a build."""
    reg = _registry(root, registry)
    runs = reg.list_runs(build_name)
    if not runs:
        console.print(f"[dim]No builds recorded for {build_name}.[/dim]")
        return

    table = Table(title=f"Builds: {build_name}")
    table.add_column("Number", style="cyan")
    table.add_column("Started")
    table.add_column("Modules", justify="right")
    table.add_column("Release status")
    for run in runs:
        detailed = reg.load_detailed(run)
        modules = len(detailed.modules) if detailed else 0
        statuses = ", ".join(s.status for s in detailed.release_statuses) if detailed else ""
        table.add_row(run.number, run.started, str(modules), statuses or "[dim]-[/dim]")
    console.print(table)
