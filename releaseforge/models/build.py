"""Build-info models: builds, modules, artifacts and dependencies.

A build run is identified by (name, number, started).  The detailed build
carries the module graph; it is never mutated, promotion produces new
instances through ``model_copy``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ArtifactKind(str, Enum):
    """Closed variant of artifact handling strategies."""

    OPAQUE = "opaque"
    POM = "pom"
    IVY = "ivy"

    @classmethod
    def from_type(cls, type_name: str) -> ArtifactKind:
        """Map a raw build-info type string onto a handling strategy."""
        normalized = (type_name or "").strip().lower()
        if normalized == "pom":
            return cls.POM
        if normalized == "ivy":
            return cls.IVY
        return cls.OPAQUE


class Artifact(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    type: str = ""
    sha1: str
    md5: str = ""

    @property
    def kind(self) -> ArtifactKind:
        return ArtifactKind.from_type(self.type)


class Dependency(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    sha1: str
    type: str = ""
    scopes: list[str] = []
    md5: str = ""


class Module(BaseModel):
    """A build module; ``id`` is ``group:artifact:version``."""

    model_config = ConfigDict(frozen=True)

    id: str
    artifacts: list[Artifact] = []
    dependencies: list[Dependency] = []


class ReleaseStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: str
    comment: str = ""
    repository: str = ""
    ci_user: str | None = None
    user: str = ""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class BuildRun(BaseModel):
    """Lightweight build identity returned by registry lookups."""

    model_config = ConfigDict(frozen=True)

    name: str
    number: str
    started: str

    def __str__(self) -> str:
        return f"{self.name}/{self.number}"


class DetailedBuild(BaseModel):
    """Full build-info record."""

    model_config = ConfigDict(frozen=True)

    name: str
    number: str
    started: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    agent: str = ""
    modules: list[Module] = []
    release_statuses: list[ReleaseStatus] = []
    properties: dict[str, str] = {}

    @property
    def run(self) -> BuildRun:
        return BuildRun(name=self.name, number=self.number, started=self.started)

    def copy_as(self, number: str) -> DetailedBuild:
        """Structural copy under a new build number, without release history."""
        return self.model_copy(
            update={"number": number, "release_statuses": []},
            deep=True,
        )

    def __str__(self) -> str:
        return f"{self.name}/{self.number}"
