"""Promotion workflow models: request, context, states and outcome."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from releaseforge.core.errors import HTTP_OK, PromotionRequestError
from releaseforge.models.build import Artifact, DetailedBuild
from releaseforge.models.repo import RepoPath


class PromotionState(str, Enum):
    """Promotion workflow states, in forward order."""

    LOCATE_BUILD = "locate_build"
    GUARD_DUPLICATE = "guard_duplicate"
    PREPARE_RELEASE_COPY = "prepare_release_copy"
    PROMOTE_MODULES = "promote_modules"
    RELINK_DEPENDENCIES = "relink_dependencies"
    PERSIST = "persist"
    VALIDATE = "validate"
    DONE = "done"
    ROLLBACK = "rollback"
    FAILED = "failed"


_FORWARD: list[PromotionState] = [
    PromotionState.LOCATE_BUILD,
    PromotionState.GUARD_DUPLICATE,
    PromotionState.PREPARE_RELEASE_COPY,
    PromotionState.PROMOTE_MODULES,
    PromotionState.RELINK_DEPENDENCIES,
    PromotionState.PERSIST,
    PromotionState.VALIDATE,
    PromotionState.DONE,
]

# Every working state may advance one step, roll back, or fail outright
# (request errors fail without a rollback).  DONE and FAILED are terminal.
VALID_TRANSITIONS: dict[PromotionState, set[PromotionState]] = {
    state: {nxt, PromotionState.ROLLBACK, PromotionState.FAILED}
    for state, nxt in zip(_FORWARD, _FORWARD[1:])
}
VALID_TRANSITIONS[PromotionState.ROLLBACK] = {PromotionState.FAILED}
VALID_TRANSITIONS[PromotionState.DONE] = set()
VALID_TRANSITIONS[PromotionState.FAILED] = set()


class PromotionTransition(BaseModel):
    """One journaled state change."""

    model_config = ConfigDict(frozen=True)

    from_state: PromotionState
    to_state: PromotionState
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    note: str = ""


def _first(params: Mapping[str, Sequence[str]], key: str) -> str | None:
    values = params.get(key)
    if not values:
        return None
    return str(values[0])


class PromotionRequest(BaseModel):
    """Caller-supplied promotion parameters."""

    model_config = ConfigDict(frozen=True)

    build_name: str
    build_number: str
    snapshot_expression: str
    target_repository: str
    build_started: str | None = None
    ci_user: str | None = None

    @classmethod
    def from_params(
        cls,
        build_name: str,
        build_number: str,
        params: Mapping[str, Sequence[str]],
    ) -> PromotionRequest:
        """Build a request from a transport-style multi-valued parameter map.

        Raises ``PromotionRequestError`` when ``snapExp`` or
        ``targetRepository`` is missing.
        """
        snap_exp = _first(params, "snapExp")
        if snap_exp is None:
            raise PromotionRequestError("snapExp is mandatory parameter")
        target = _first(params, "targetRepository")
        if target is None:
            raise PromotionRequestError("targetRepository is mandatory parameter")
        return cls(
            build_name=build_name,
            build_number=build_number,
            snapshot_expression=snap_exp,
            target_repository=target,
            build_started=_first(params, "buildStartTime"),
            ci_user=_first(params, "ciUser"),
        )


class PromotionContext(BaseModel):
    """Mutable per-invocation state owned by the orchestrator.

    ``released_paths`` is the rollback accumulator: every release path
    written during this attempt, in creation order, without duplicates.
    ``release_build_saved`` is set once this attempt has persisted its own
    release build record.
    """

    request: PromotionRequest
    release_number: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    released_paths: list[RepoPath] = []
    missing_artifacts: list[Artifact] = []
    transitions: list[PromotionTransition] = []
    release_build: DetailedBuild | None = None
    release_build_saved: bool = False

    @property
    def snapshot_expression(self) -> str:
        return self.request.snapshot_expression

    @property
    def target_repository(self) -> str:
        return self.request.target_repository

    @property
    def timestamp_millis(self) -> str:
        """Promotion timestamp as epoch milliseconds, for artifact properties."""
        return str(int(self.timestamp.timestamp() * 1000))

    @property
    def publication(self) -> str:
        """Promotion timestamp in Ivy publication format (yyyyMMddHHmmss)."""
        return self.timestamp.strftime("%Y%m%d%H%M%S")

    def record_release(self, repo_path: RepoPath) -> None:
        if repo_path not in self.released_paths:
            self.released_paths.append(repo_path)


class RollbackReport(BaseModel):
    """What the compensating sweep managed to undo."""

    model_config = ConfigDict(frozen=True)

    deleted: list[RepoPath] = []
    pruned_folders: list[RepoPath] = []
    failures: list[str] = []
    build_deleted: bool = False

    @property
    def complete(self) -> bool:
        return not self.failures


class PromotionResult(BaseModel):
    """Outward promotion outcome: an HTTP-style status and a message."""

    model_config = ConfigDict(frozen=True)

    status_code: int
    message: str
    build_name: str = ""
    release_number: str = ""
    state: PromotionState = PromotionState.DONE
    released_paths: list[RepoPath] = []
    missing_artifacts: list[str] = []
    rollback: RollbackReport | None = None

    @property
    def ok(self) -> bool:
        return self.status_code == HTTP_OK
