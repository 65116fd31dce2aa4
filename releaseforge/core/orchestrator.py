"""Promotion orchestrator, the central coordinator for build promotions.

The PromotionOrchestrator wires the build registry, the artifact store, the
ModulePromoter, the DependencyRelinker and the RollbackCoordinator into one
sequential workflow:

    LOCATE_BUILD -> GUARD_DUPLICATE -> PREPARE_RELEASE_COPY -> PROMOTE_MODULES
        -> RELINK_DEPENDENCIES -> PERSIST -> VALIDATE -> DONE

Components report failures as ``Err(PromotionError)``.  This module is the
single point that turns a failure into the outward status code and message,
running the compensating rollback first whenever storage may have been
touched.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime, timezone

from releaseforge.config import PromotionSettings
from releaseforge.core.build_registry import SQLiteBuildRegistry
from releaseforge.core.contracts import ArtifactStore, BuildRegistry, IdentityProvider
from releaseforge.core.dependency_relinker import DependencyRelinker
from releaseforge.core.errors import (
    HTTP_BAD_REQUEST,
    HTTP_CONFLICT,
    HTTP_OK,
    PromotionError,
    PromotionRequestError,
    parity_error,
    request_error,
    storage_error,
)
from releaseforge.core.identity import identity_from_settings
from releaseforge.core.metadata_rewriter import MetadataRewriter
from releaseforge.core.module_promoter import ModulePromoter
from releaseforge.core.repository import FileSystemRepository
from releaseforge.core.result import Err, Ok, Result, is_err
from releaseforge.core.rollback import RollbackCoordinator
from releaseforge.core.state_machine import PromotionStateMachine
from releaseforge.core.version_resolver import (
    VersionResolver,
    is_supported_expression,
    truncate_at_hyphen,
)
from releaseforge.models.build import DetailedBuild, Module, ReleaseStatus
from releaseforge.models.promotion import (
    PromotionContext,
    PromotionRequest,
    PromotionResult,
    PromotionState,
    RollbackReport,
)

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PromotionOrchestrator:
    """Promotes a staged build to a release build.

    Parameters
    ----------
    registry:
        Build-info storage.
    store:
        Artifact storage holding both staged and release repositories.
    identity:
        Supplies the user recorded in the release status.
    settings:
        Promotion settings. Uses defaults if not provided.
    resolver:
        Staged -> released version function shared by every component.
    clock:
        Source of the promotion timestamp.
    """

    def __init__(
        self,
        registry: BuildRegistry,
        store: ArtifactStore,
        identity: IdentityProvider,
        *,
        settings: PromotionSettings | None = None,
        resolver: VersionResolver = truncate_at_hyphen,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.settings = settings or PromotionSettings()
        self.registry = registry
        self.store = store
        self.identity = identity
        self._clock = clock

        expressions = self.settings.snapshot_expressions
        self.rewriter = MetadataRewriter(store, resolver)
        self.module_promoter = ModulePromoter(
            store,
            self.rewriter,
            resolver=resolver,
            expressions=expressions,
            release_suffix=self.settings.release_number_suffix,
        )
        self.relinker = DependencyRelinker(store, resolver=resolver, expressions=expressions)
        self.rollback = RollbackCoordinator(store, registry)

    @classmethod
    def from_settings(cls, settings: PromotionSettings) -> PromotionOrchestrator:
        """Build an orchestrator on the bundled filesystem/SQLite backends."""
        store = FileSystemRepository(
            settings.repository_root,
            layouts=settings.repository_layouts,
            default_layout=settings.default_layout,
        )
        registry = SQLiteBuildRegistry(settings.registry_path, store)
        return cls(
            registry,
            store,
            identity_from_settings(settings.acting_user),
            settings=settings,
        )

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def promote_params(
        self,
        build_name: str,
        build_number: str,
        params: Mapping[str, Sequence[str]],
    ) -> PromotionResult:
        """Promote from a transport-style parameter map."""
        try:
            request = PromotionRequest.from_params(build_name, build_number, params)
        except PromotionRequestError as exc:
            logger.warning("%s", exc)
            return PromotionResult(
                status_code=HTTP_BAD_REQUEST,
                message=str(exc),
                build_name=build_name,
                state=PromotionState.FAILED,
            )
        return self.promote(request)

    def promote(self, request: PromotionRequest) -> PromotionResult:
        """Run the full promotion workflow for one staged build."""
        logger.info("Promoting build: %s/%s", request.build_name, request.build_number)
        ctx = PromotionContext(
            request=request,
            release_number=self.settings.release_number(request.build_number),
            timestamp=self._clock(),
        )
        machine = PromotionStateMachine(ctx)

        try:
            outcome = self._run(ctx, machine)
        except Exception as exc:  # noqa: BLE001
            outcome = Err(storage_error("Unexpected failure during promotion", cause=exc))

        if is_err(outcome):
            return self._fail(ctx, machine, outcome.error)

        machine.transition(PromotionState.DONE)
        message = (
            f"Build {request.build_name}/{request.build_number} "
            "has been successfully promoted"
        )
        logger.info(message)
        return self._result(ctx, machine, HTTP_OK, message)

    # ------------------------------------------------------------------
    # Workflow
    # ------------------------------------------------------------------

    def _run(
        self, ctx: PromotionContext, machine: PromotionStateMachine
    ) -> Result[DetailedBuild, PromotionError]:
        request = ctx.request
        name, number = request.build_name, request.build_number

        # LOCATE_BUILD
        runs = self.registry.find(name, number, request.build_started)
        if len(runs) > 1:
            return Err(
                request_error(
                    "Found two matching build to promote, please provide build start time",
                    HTTP_CONFLICT,
                )
            )
        if not runs:
            return Err(
                request_error(
                    f"Build {name}/{number} was not found, canceling promotion", HTTP_CONFLICT
                )
            )
        run = runs[0]

        # GUARD_DUPLICATE
        machine.transition(PromotionState.GUARD_DUPLICATE)
        if self.registry.find(name, ctx.release_number):
            return Err(
                request_error(
                    f"Build {name}/{number} was already promoted under build number "
                    f"{ctx.release_number}"
                )
            )

        # PREPARE_RELEASE_COPY
        machine.transition(PromotionState.PREPARE_RELEASE_COPY)
        expressions = self.settings.snapshot_expressions
        if not is_supported_expression(request.snapshot_expression, expressions):
            return Err(
                request_error(
                    f"Unsupported snapshot expression {request.snapshot_expression!r}; "
                    f"supported patterns: {', '.join(sorted(expressions))}"
                )
            )
        staged = self.registry.load_detailed(run)
        if staged is None:
            return Err(
                request_error(
                    f"Build {name}/{number} was not found, canceling promotion", HTTP_CONFLICT
                )
            )
        staged_files = self.registry.list_artifact_files(run)
        ctx.release_build = staged.copy_as(ctx.release_number)

        # PROMOTE_MODULES
        machine.transition(PromotionState.PROMOTE_MODULES)
        promoted: list[Module] = []
        for module in ctx.release_build.modules:
            result = self.module_promoter.promote(module, staged_files, ctx)
            if is_err(result):
                return result
            promoted.append(result.value)

        # RELINK_DEPENDENCIES
        machine.transition(PromotionState.RELINK_DEPENDENCIES)
        relinked = self.relinker.relink(promoted, staged_files, ctx)
        if is_err(relinked):
            return relinked

        # PERSIST
        machine.transition(PromotionState.PERSIST)
        status = ReleaseStatus(
            status=self.settings.release_status,
            comment=self.settings.release_comment_template.format(build_name=name),
            repository=request.target_repository,
            ci_user=request.ci_user,
            user=self.identity.current_username(),
            timestamp=ctx.timestamp,
        )
        release = ctx.release_build.model_copy(
            update={
                "modules": relinked.value,
                "release_statuses": [*ctx.release_build.release_statuses, status],
            }
        )
        ctx.release_build = release
        self.registry.save(release)
        ctx.release_build_saved = True

        # VALIDATE
        machine.transition(PromotionState.VALIDATE)
        if len(ctx.released_paths) != len(staged_files):
            logger.warning(
                "Release artifact count %d differs from the staged artifact count %d; "
                "this promotion logic does not fit the build",
                len(ctx.released_paths),
                len(staged_files),
            )
            return Err(
                parity_error(
                    f"Released {len(ctx.released_paths)} artifact(s) but build "
                    f"{name}/{number} has {len(staged_files)} staged artifact(s)"
                )
            )
        return Ok(release)

    # ------------------------------------------------------------------
    # Failure translation
    # ------------------------------------------------------------------

    def _fail(
        self,
        ctx: PromotionContext,
        machine: PromotionStateMachine,
        error: PromotionError,
    ) -> PromotionResult:
        report = None
        if error.requires_rollback:
            machine.transition(PromotionState.ROLLBACK, note=error.message)
            logger.warning("Rolling back build promotion: %s", error)
            report = self.rollback.execute(ctx)
        machine.transition(PromotionState.FAILED, note=error.message)
        logger.warning("%s", error.message)
        return self._result(ctx, machine, error.status_code, error.message, report)

    def _result(
        self,
        ctx: PromotionContext,
        machine: PromotionStateMachine,
        status_code: int,
        message: str,
        rollback: RollbackReport | None = None,
    ) -> PromotionResult:
        return PromotionResult(
            status_code=status_code,
            message=message,
            build_name=ctx.request.build_name,
            release_number=ctx.release_number,
            state=machine.state,
            released_paths=list(ctx.released_paths) if rollback is None else [],
            missing_artifacts=[a.name for a in ctx.missing_artifacts],
            rollback=rollback,
        )
