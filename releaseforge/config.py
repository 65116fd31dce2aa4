"""Promotion settings, env-driven via pydantic-settings.

Reads ``RELEASEFORGE_*`` environment variables and an optional ``.env`` file.

Examples
--------
Override via environment::

    export RELEASEFORGE_LOG_LEVEL=DEBUG
    export RELEASEFORGE_REPOSITORY_ROOT=/srv/artifacts
    export RELEASEFORGE_REPOSITORY_LAYOUTS='{"ivy-snapshots": "ivy-default"}'
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Snapshot expression name -> regular expression matched against a version.
# SNAPSHOT is the Maven non-unique marker, d14 the 14-digit Ivy timestamp.
DEFAULT_SNAPSHOT_EXPRESSIONS: dict[str, str] = {
    "SNAPSHOT": r"SNAPSHOT",
    "d14": r"\d{14}",
}


class PromotionSettings(BaseSettings):
    """Settings shared by the CLI and the promotion orchestrator."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="RELEASEFORGE_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "INFO"

    # Local collaborator backends
    repository_root: Path = Path(".releaseforge/repositories")
    registry_path: Path = Path(".releaseforge/builds.db")

    # Repository key -> layout name; unlisted repositories use default_layout
    default_layout: str = "maven-2-default"
    repository_layouts: dict[str, str] = {}

    snapshot_expressions: dict[str, str] = dict(DEFAULT_SNAPSHOT_EXPRESSIONS)

    # Release build record
    release_number_suffix: str = "-r"
    release_status: str = "Released"
    release_comment_template: str = "Releasing build {build_name}"

    # Overrides the identity provider when set
    acting_user: str = ""

    def release_number(self, build_number: str) -> str:
        return f"{build_number}{self.release_number_suffix}"


# Module-level singleton, import as `from releaseforge.config import settings`
settings = PromotionSettings()
