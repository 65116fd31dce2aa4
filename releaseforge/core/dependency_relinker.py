"""Second pass: point inter-module dependencies at their released files."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from releaseforge.config import DEFAULT_SNAPSHOT_EXPRESSIONS
from releaseforge.core.contracts import ArtifactStore
from releaseforge.core.errors import PromotionError, storage_error
from releaseforge.core.path_mapper import map_release_path, stage_version_of
from releaseforge.core.result import Err, Ok, Result, is_err
from releaseforge.core.version_resolver import (
    VersionResolver,
    resolve_module_id,
    truncate_at_hyphen,
)
from releaseforge.models.build import Dependency, Module
from releaseforge.models.promotion import PromotionContext
from releaseforge.models.repo import FileInfo

logger = logging.getLogger(__name__)


class DependencyRelinker:
    """Rewrites module dependency lists after all modules were promoted.

    A dependency whose checksum matches a staged file of the build is
    internal and gets the released coordinate and file checksum; any other
    dependency is external and is kept verbatim.
    """

    def __init__(
        self,
        store: ArtifactStore,
        *,
        resolver: VersionResolver = truncate_at_hyphen,
        expressions: Mapping[str, str] = DEFAULT_SNAPSHOT_EXPRESSIONS,
    ) -> None:
        self._store = store
        self._resolver = resolver
        self._expressions = expressions

    def relink(
        self,
        modules: Sequence[Module],
        staged_files: Sequence[FileInfo],
        ctx: PromotionContext,
    ) -> Result[list[Module], PromotionError]:
        by_sha1: dict[str, FileInfo] = {}
        for info in staged_files:
            by_sha1.setdefault(info.sha1, info)

        relinked: list[Module] = []
        for module in modules:
            dependencies: list[Dependency] = []
            for dependency in module.dependencies:
                match = by_sha1.get(dependency.sha1)
                if match is None:
                    dependencies.append(dependency)
                    continue
                replaced = self._relink_one(dependency, match, ctx)
                if is_err(replaced):
                    return replaced
                dependencies.append(replaced.value)
            relinked.append(module.model_copy(update={"dependencies": dependencies}))
        return Ok(relinked)

    def _relink_one(
        self, dependency: Dependency, match: FileInfo, ctx: PromotionContext
    ) -> Result[Dependency, PromotionError]:
        try:
            layout = self._store.get_layout_info(match.repo_path)
            mapped = map_release_path(
                ctx.target_repository,
                match.repo_path,
                stage_version_of(match.repo_path, layout),
                ctx.snapshot_expression,
                layout,
                resolver=self._resolver,
                expressions=self._expressions,
            )
            if is_err(mapped):
                return mapped
            released = self._store.get_file_info(mapped.value)
        except Exception as exc:  # noqa: BLE001
            return Err(storage_error(f"Failed to relink dependency {dependency.id}", cause=exc))

        if released is None:
            return Err(
                storage_error(
                    f"Released file {mapped.value} for dependency {dependency.id} not found"
                )
            )
        coordinate = resolve_module_id(dependency.id, ctx.snapshot_expression, self._resolver)
        logger.debug("Relinked dependency %s -> %s", dependency.id, coordinate.id)
        return Ok(
            Dependency(
                id=coordinate.id,
                sha1=released.sha1,
                md5=released.md5,
                scopes=list(dependency.scopes),
                type=dependency.type,
            )
        )
