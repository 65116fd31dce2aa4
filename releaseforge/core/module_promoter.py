"""Per-module promotion: map, deploy and re-register each artifact."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from releaseforge.config import DEFAULT_SNAPSHOT_EXPRESSIONS
from releaseforge.core.contracts import ArtifactStore
from releaseforge.core.errors import PromotionError, storage_error
from releaseforge.core.metadata_rewriter import InnerDependency, MetadataRewriter
from releaseforge.core.path_mapper import map_release_path
from releaseforge.core.result import Err, Ok, Result, is_err
from releaseforge.core.version_resolver import (
    VersionResolver,
    resolve_module_id,
    truncate_at_hyphen,
)
from releaseforge.models.build import Artifact, ArtifactKind, Module
from releaseforge.models.promotion import PromotionContext
from releaseforge.models.repo import FileInfo, RepoPath

logger = logging.getLogger(__name__)


class ModulePromoter:
    """Promotes the artifacts of one module into the release repository.

    Every release path written is recorded in the context's rollback
    accumulator as soon as it exists in the store.
    """

    def __init__(
        self,
        store: ArtifactStore,
        rewriter: MetadataRewriter,
        *,
        resolver: VersionResolver = truncate_at_hyphen,
        expressions: Mapping[str, str] = DEFAULT_SNAPSHOT_EXPRESSIONS,
        release_suffix: str = "-r",
    ) -> None:
        self._store = store
        self._rewriter = rewriter
        self._resolver = resolver
        self._expressions = expressions
        self._release_suffix = release_suffix

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    def find_staged_file(
        self, artifact: Artifact, staged_files: Sequence[FileInfo]
    ) -> FileInfo | None:
        """Locate the stored file behind a build-info artifact.

        Checksums alone are ambiguous (distinct artifacts can share one), so
        the file's layout module must also prefix the artifact name.  Ivy
        descriptors and files outside any layout are matched on checksum.
        """
        for candidate in staged_files:
            if candidate.sha1 != artifact.sha1:
                continue
            layout = self._store.get_layout_info(candidate.repo_path)
            if (
                artifact.kind is ArtifactKind.IVY
                or not layout.valid
                or artifact.name.startswith(layout.module)
            ):
                return candidate
        return None

    def inner_dependencies(
        self, module: Module, staged_files: Sequence[FileInfo]
    ) -> list[InnerDependency]:
        """Staged files of this build that the module depends on."""
        by_sha1: dict[str, FileInfo] = {}
        for info in staged_files:
            by_sha1.setdefault(info.sha1, info)
        inner: list[InnerDependency] = []
        for dependency in module.dependencies:
            match = by_sha1.get(dependency.sha1)
            if match is not None:
                inner.append(
                    InnerDependency(match, self._store.get_layout_info(match.repo_path))
                )
        return inner

    # ------------------------------------------------------------------
    # Promotion
    # ------------------------------------------------------------------

    def promote(
        self,
        module: Module,
        staged_files: Sequence[FileInfo],
        ctx: PromotionContext,
    ) -> Result[Module, PromotionError]:
        """Return the module with released id and artifacts, or the first failure."""
        try:
            return self._promote(module, staged_files, ctx)
        except Exception as exc:  # noqa: BLE001
            return Err(storage_error(f"Failed to promote module {module.id}", cause=exc))

    def _promote(
        self,
        module: Module,
        staged_files: Sequence[FileInfo],
        ctx: PromotionContext,
    ) -> Result[Module, PromotionError]:
        coordinate = resolve_module_id(module.id, ctx.snapshot_expression, self._resolver)
        inner = self.inner_dependencies(module, staged_files)

        artifacts: list[Artifact] = []
        for artifact in module.artifacts:
            staged = self.find_staged_file(artifact, staged_files)
            if staged is None:
                logger.warning(
                    "No artifact with the same name and sha1 was found for %s (%s); "
                    "there is probably more than one artifact with the same sha1",
                    artifact.name,
                    artifact.sha1,
                )
                ctx.missing_artifacts.append(artifact)
                artifacts.append(artifact)
                continue

            mapped = map_release_path(
                ctx.target_repository,
                staged.repo_path,
                coordinate.stage_version,
                ctx.snapshot_expression,
                self._store.get_layout_info(staged.repo_path),
                resolver=self._resolver,
                expressions=self._expressions,
            )
            if is_err(mapped):
                return mapped
            release_path = mapped.value

            deployed = self._deploy(artifact, staged.repo_path, release_path, inner, ctx)
            if is_err(deployed):
                return deployed
            ctx.record_release(release_path)

            self._copy_properties(staged.repo_path, release_path, ctx)

            released = self._store.get_file_info(release_path)
            if released is None:
                return Err(storage_error(f"Release artifact {release_path} vanished after deploy"))
            artifacts.append(
                Artifact(
                    name=released.name,
                    type=artifact.type,
                    sha1=released.sha1,
                    md5=released.md5,
                )
            )

        logger.info("Promoted module %s -> %s", module.id, coordinate.id)
        return Ok(module.model_copy(update={"id": coordinate.id, "artifacts": artifacts}))

    def _deploy(
        self,
        artifact: Artifact,
        staged_path: RepoPath,
        release_path: RepoPath,
        inner: Sequence[InnerDependency],
        ctx: PromotionContext,
    ) -> Result[None, PromotionError]:
        match artifact.kind:
            case ArtifactKind.POM | ArtifactKind.IVY:
                return self._rewriter.rewrite_and_deploy(
                    artifact.kind, staged_path, release_path, inner, ctx
                )
            case ArtifactKind.OPAQUE:
                copied = self._store.copy(staged_path, release_path)
                if is_err(copied):
                    fault = copied.error
                    return Err(
                        storage_error(
                            f"Failed to copy {staged_path} to {release_path}: {fault.message}",
                            cause=fault.cause,
                        )
                    )
                return Ok(None)

    def _copy_properties(
        self, staged_path: RepoPath, release_path: RepoPath, ctx: PromotionContext
    ) -> None:
        """Carry staged properties over with release build number, status and time."""
        properties = self._store.get_properties(staged_path)
        numbers = properties.get("build.number")
        properties["build.number"] = (
            [f"{numbers[0]}{self._release_suffix}"] if numbers else [ctx.release_number]
        )
        properties["build.status"] = ["release"]
        properties["build.timestamp"] = [ctx.timestamp_millis]
        for key, values in properties.items():
            self._store.set_property(release_path, key, *values)
