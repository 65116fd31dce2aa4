"""Repository addressing and layout models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class RepoPath(BaseModel):
    """A repository key plus a slash-separated relative path.

    The repository root is the path ``""``.
    """

    model_config = ConfigDict(frozen=True)

    repo: str
    path: str = ""

    @classmethod
    def create(cls, repo: str, path: str) -> RepoPath:
        return cls(repo=repo, path=path.strip("/"))

    @property
    def is_root(self) -> bool:
        return self.path == ""

    @property
    def name(self) -> str:
        return self.path.rsplit("/", 1)[-1] if self.path else ""

    @property
    def parent(self) -> RepoPath | None:
        """The containing folder, or ``None`` for the repository root."""
        if self.is_root:
            return None
        head, _, _ = self.path.rpartition("/")
        return RepoPath(repo=self.repo, path=head)

    def child(self, name: str) -> RepoPath:
        return RepoPath.create(self.repo, f"{self.path}/{name}" if self.path else name)

    def __str__(self) -> str:
        return f"{self.repo}:{self.path}"


class FileInfo(BaseModel):
    """Stored file metadata as reported by the artifact store."""

    model_config = ConfigDict(frozen=True)

    repo_path: RepoPath
    sha1: str
    md5: str = ""
    size: int = 0

    @property
    def name(self) -> str:
        return self.repo_path.name


class LayoutInfo(BaseModel):
    """Module coordinates a repository layout derives from a path.

    ``valid`` is False when the path does not fit the layout; the other
    fields are then empty.
    """

    model_config = ConfigDict(frozen=True)

    valid: bool = False
    integration: bool = False
    organization: str = ""
    module: str = ""
    base_revision: str = ""
    folder_integration_revision: str = ""
    file_integration_revision: str = ""
    classifier: str = ""
    ext: str = ""

    @property
    def folder_revision(self) -> str:
        """Base revision plus the folder integration token, as in the path."""
        if self.integration and self.folder_integration_revision:
            return f"{self.base_revision}-{self.folder_integration_revision}"
        return self.base_revision


INVALID_LAYOUT = LayoutInfo()


class StorageFault(BaseModel):
    """Failure status returned by a mutating artifact store call."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    message: str
    cause: BaseException | None = None
