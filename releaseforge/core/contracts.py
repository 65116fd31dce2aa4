"""Collaborator contracts consumed by the promotion workflow.

The orchestrator depends only on these Protocols.  ``FileSystemRepository``,
``SQLiteBuildRegistry`` and ``StaticIdentity`` are the bundled local
implementations; any object with matching methods can replace them.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from releaseforge.core.result import Result
from releaseforge.models.build import BuildRun, DetailedBuild
from releaseforge.models.repo import FileInfo, LayoutInfo, RepoPath, StorageFault


@runtime_checkable
class BuildRegistry(Protocol):
    """Build-info storage keyed by name, number and start time."""

    def find(self, name: str, number: str, started: str | None = None) -> list[BuildRun]:
        """Return every recorded run matching the identity; ``started`` narrows."""
        ...

    def load_detailed(self, run: BuildRun) -> DetailedBuild | None: ...

    def save(self, build: DetailedBuild) -> None: ...

    def delete(self, run: BuildRun) -> Result[None, StorageFault]: ...

    def list_artifact_files(self, run: BuildRun) -> list[FileInfo]:
        """Return the stored files that belong to the run's artifacts."""
        ...


@runtime_checkable
class ArtifactStore(Protocol):
    """Blocking, individually atomic artifact storage operations.

    Mutating calls report failure through ``Err(StorageFault)``; read calls
    may raise.
    """

    def copy(self, src: RepoPath, dst: RepoPath) -> Result[None, StorageFault]: ...

    def deploy(self, dst: RepoPath, content: bytes | str) -> Result[None, StorageFault]: ...

    def delete(self, path: RepoPath) -> Result[None, StorageFault]: ...

    def list_children(self, path: RepoPath) -> list[RepoPath]: ...

    def get_content(self, path: RepoPath) -> str: ...

    def get_properties(self, path: RepoPath) -> dict[str, list[str]]: ...

    def set_property(self, path: RepoPath, key: str, *values: str) -> None: ...

    def get_file_info(self, path: RepoPath) -> FileInfo | None: ...

    def get_layout_info(self, path: RepoPath) -> LayoutInfo: ...


@runtime_checkable
class IdentityProvider(Protocol):
    def current_username(self) -> str: ...
