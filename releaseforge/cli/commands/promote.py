"""``releaseforge promote NAME NUMBER``: promote a staged build to release.

Runs the full promotion workflow against the configured repositories and
build registry, then reports the outcome.  A failed promotion has already
been rolled back when this command returns; the rollback summary is shown.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from releaseforge.config import settings as default_settings
from releaseforge.core.orchestrator import PromotionOrchestrator
from releaseforge.models.promotion import PromotionRequest, PromotionResult

console = Console()


def promote_cmd(
    build_name: str = typer.Argument(..., help="Name of the staged build."),
    build_number: str = typer.Argument(..., help="Number of the staged build."),
    snapshot_expression: str = typer.Option(
        ...,
        "--snapshot-expression",
        "-s",
        help="Snapshot pattern name (SNAPSHOT or d14).",
    ),
    target_repository: str = typer.Option(
        ...,
        "--target-repo",
        "-t",
        help="Repository receiving the release artifacts.",
    ),
    build_started: str = typer.Option(
        None,
        "--build-started",
        help="Build start time; required when several runs share the number.",
    ),
    ci_user: str = typer.Option(
        None,
        "--ci-user",
        help="User that triggered the promotion from CI.",
    ),
    root: Path = typer.Option(
        None,
        "--root",
        "-r",
        help="Repository root directory.",
    ),
    registry: Path = typer.Option(
        None,
        "--registry",
        help="Path to the build registry SQLite database.",
    ),
) -> None:
    """Promote a staged build and record it as ``<number>-r``."""
    overrides = {}
    if root is not None:
        overrides["repository_root"] = root
    if registry is not None:
        overrides["registry_path"] = registry
    settings = default_settings.model_copy(update=overrides)

    orchestrator = PromotionOrchestrator.from_settings(settings)
    request = PromotionRequest(
        build_name=build_name,
        build_number=build_number,
        snapshot_expression=snapshot_expression,
        target_repository=target_repository,
        build_started=build_started,
        ci_user=ci_user,
    )
    result = orchestrator.promote(request)

    console.print()
    _print_result(result)
    if not result.ok:
        raise typer.Exit(code=1)


def _print_result(result: PromotionResult) -> None:
    if result.ok:
        lines = [
            f"[bold green]{escape(result.message)}[/bold green]",
            "",
            f"[bold]Release build:[/bold]  {result.build_name}/{result.release_number}",
            f"[bold]Artifacts:[/bold]      {len(result.released_paths)}",
        ]
        console.print(
            Panel(
                "\n".join(lines),
                title="[bold]Promotion[/bold]",
                border_style="green",
                padding=(1, 2),
            )
        )
        table = Table(title="Released artifacts")
        table.add_column("Repository", style="cyan")
        table.add_column("Path")
        for path in result.released_paths:
            table.add_row(path.repo, path.path)
        console.print(table)
        return

    lines = [
        f"[bold red]{escape(result.message)}[/bold red]",
        "",
        f"[bold]Status:[/bold]  {result.status_code}",
        f"[bold]State:[/bold]   {result.state.value}",
    ]
    if result.missing_artifacts:
        lines.append(f"[bold]Missing:[/bold] {', '.join(result.missing_artifacts)}")
    report = result.rollback
    if report is not None:
        lines += [
            "",
            f"[bold]Rolled back:[/bold]     {len(report.deleted)} artifact(s), "
            f"{len(report.pruned_folders)} folder(s)",
            f"[bold]Release build:[/bold]   {'deleted' if report.build_deleted else 'not recorded'}",
        ]
        for failure in report.failures:
            lines.append(f"  [red]- {escape(failure)}[/red]")
    console.print(
        Panel(
            "\n".join(lines),
            title="[bold]Promotion failed[/bold]",
            border_style="red",
            padding=(1, 2),
        )
    )
