"""Main Typer application. Imports and registers all CLI commands.

Entry point: ``releaseforge`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import logging

import typer
from rich.logging import RichHandler

from releaseforge.cli.commands.builds import builds_cmd, import_build_cmd
from releaseforge.cli.commands.promote import promote_cmd
from releaseforge.config import settings

app = typer.Typer(
    name="releaseforge",
    help="releaseforge: promote staged snapshot builds to release.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        None, "--log-level", help="Logging level (defaults to RELEASEFORGE_LOG_LEVEL)."
    ),
) -> None:
    """Configure logging before any command runs."""
    logging.basicConfig(
        level=(log_level or settings.log_level).upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )


# Register subcommands
app.command(name="promote", help="Promote a staged build to a release build.")(promote_cmd)
app.command(name="import-build", help="Record a staged build-info document.")(import_build_cmd)
app.command(name="builds", help="List recorded runs of a build.")(builds_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
