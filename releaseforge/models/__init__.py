"""releaseforge data models. Pydantic v2, frozen unless they carry workflow state."""

from releaseforge.models.build import (
    Artifact,
    ArtifactKind,
    BuildRun,
    Dependency,
    DetailedBuild,
    Module,
    ReleaseStatus,
)
from releaseforge.models.promotion import (
    VALID_TRANSITIONS,
    PromotionContext,
    PromotionRequest,
    PromotionResult,
    PromotionState,
    PromotionTransition,
    RollbackReport,
)
from releaseforge.models.repo import INVALID_LAYOUT, FileInfo, LayoutInfo, RepoPath, StorageFault

__all__ = [
    # build
    "Artifact",
    "ArtifactKind",
    "BuildRun",
    "Dependency",
    "DetailedBuild",
    "Module",
    "ReleaseStatus",
    # repo
    "FileInfo",
    "INVALID_LAYOUT",
    "LayoutInfo",
    "RepoPath",
    "StorageFault",
    # promotion
    "PromotionContext",
    "PromotionRequest",
    "PromotionResult",
    "PromotionState",
    "PromotionTransition",
    "RollbackReport",
    "VALID_TRANSITIONS",
]
