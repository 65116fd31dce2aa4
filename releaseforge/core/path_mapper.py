"""Staged path -> release path mapping."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from releaseforge.config import DEFAULT_SNAPSHOT_EXPRESSIONS
from releaseforge.core.errors import PromotionError, path_mapping_error
from releaseforge.core.result import Err, Ok, Result
from releaseforge.core.version_resolver import (
    VersionResolver,
    is_snapshot_version,
    truncate_at_hyphen,
)
from releaseforge.models.repo import LayoutInfo, RepoPath

logger = logging.getLogger(__name__)


def stage_version_from_path(path: str) -> str:
    """Return the folder holding the file, i.e. the Maven version directory."""
    tokens = path.strip("/").split("/")
    return tokens[-2] if len(tokens) >= 2 else ""


def stage_version_of(repo_path: RepoPath, layout: LayoutInfo) -> str:
    """Staged folder version of a file, from its layout when the path fits one."""
    if layout.valid:
        return layout.folder_revision
    return stage_version_from_path(repo_path.path)


def map_release_path(
    target_repository: str,
    staged_path: RepoPath,
    stage_version: str,
    snapshot_expression: str,
    layout: LayoutInfo,
    *,
    resolver: VersionResolver = truncate_at_hyphen,
    expressions: Mapping[str, str] = DEFAULT_SNAPSHOT_EXPRESSIONS,
) -> Result[RepoPath, PromotionError]:
    """Compute where a staged artifact lands in the release repository.

    A snapshot-flavored artifact must end up at a different path; an
    unchanged path is reported as a mapping error rather than promoted
    onto itself.  Release-versioned artifacts keep their path.
    """
    staging = staged_path.path
    if not (layout.integration or is_snapshot_version(stage_version, snapshot_expression, expressions)):
        logger.info("Build contains release version of %s", staged_path)
        return Ok(RepoPath.create(target_repository, staging))

    if layout.valid:
        release = staging
        if layout.folder_integration_revision:
            release = release.replace(f"-{layout.folder_integration_revision}", "")
        if layout.file_integration_revision:
            release = release.replace(f"-{layout.file_integration_revision}", "")
    elif stage_version:
        release = staging.replace(stage_version, resolver(stage_version, snapshot_expression))
    else:
        release = staging

    if release == staging:
        return Err(
            path_mapping_error(
                f"Converting stage repository path {staging} to released repository "
                "path failed, please check your snapshot expression"
            )
        )
    return Ok(RepoPath.create(target_repository, release))
