"""releaseforge CLI: Typer-based command-line interface.

Provides the ``releaseforge`` command with subcommands for importing staged
build info, listing recorded builds and promoting a build to release.

All output uses Rich for formatted terminal display.
"""
