"""Shared test fixtures for releaseforge."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest

from releaseforge.config import PromotionSettings
from releaseforge.core.build_registry import SQLiteBuildRegistry
from releaseforge.core.hasher import md5_hex, sha1_hex
from releaseforge.core.identity import StaticIdentity
from releaseforge.core.orchestrator import PromotionOrchestrator
from releaseforge.core.repository import FileSystemRepository
from releaseforge.models.build import Artifact, Dependency, DetailedBuild, Module
from releaseforge.models.promotion import PromotionContext, PromotionRequest
from releaseforge.models.repo import FileInfo, RepoPath

STAGING_REPO = "libs-snapshot-local"
RELEASE_REPO = "libs-release-local"
IVY_STAGING_REPO = "ivy-snapshots"

PROMOTION_TIME = datetime(2024, 5, 1, 12, 30, 0, tzinfo=timezone.utc)

LIB_POM = """<?xml version="1.0" encoding="UTF-8"?>
<project xmlns="http://maven.apache.org/POM/4.0.0" xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance" xsi:schemaLocation="http://maven.apache.org/POM/4.0.0 http://maven.apache.org/xsd/maven-4.0.0.xsd">
  <modelVersion>4.0.0</modelVersion>
  <groupId>com.acme</groupId>
  <artifactId>lib</artifactId>
  <version>1.0-SNAPSHOT</version>
</project>
"""

APP_POM = """<?xml version="1.0" encoding="UTF-8"?>
<project xmlns="http://maven.apache.org/POM/4.0.0" xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance" xsi:schemaLocation="http://maven.apache.org/POM/4.0.0 http://maven.apache.org/xsd/maven-4.0.0.xsd">
  <modelVersion>4.0.0</modelVersion>
  <!-- application module -->
  <groupId>com.acme</groupId>
  <artifactId>app</artifactId>
  <version>1.0-SNAPSHOT</version>
  <dependencies>
    <dependency>
      <groupId>com.acme</groupId>
      <artifactId>lib</artifactId>
      <version>1.0-SNAPSHOT</version>
    </dependency>
    <dependency>
      <groupId>org.apache.commons</groupId>
      <artifactId>commons-lang3</artifactId>
      <version>3.14.0</version>
    </dependency>
  </dependencies>
</project>
"""

EXTERNAL_DEPENDENCY = Dependency(
    id="org.apache.commons:commons-lang3:3.14.0",
    sha1=sha1_hex(b"commons-lang3 jar"),
    md5=md5_hex(b"commons-lang3 jar"),
    type="jar",
    scopes=["compile"],
)


@pytest.fixture
def repository(tmp_path: Path) -> FileSystemRepository:
    """Provide a fresh filesystem artifact store in a temp directory."""
    return FileSystemRepository(
        tmp_path / "repositories",
        layouts={IVY_STAGING_REPO: "ivy-default"},
    )


@pytest.fixture
def registry(tmp_path: Path, repository: FileSystemRepository) -> SQLiteBuildRegistry:
    """Provide a fresh build registry backed by a temp SQLite database."""
    return SQLiteBuildRegistry(tmp_path / "builds.db", repository)


@pytest.fixture
def promotion_settings(tmp_path: Path) -> PromotionSettings:
    """Settings pointing at the temp directory, with a fixed acting user."""
    return PromotionSettings(
        repository_root=tmp_path / "repositories",
        registry_path=tmp_path / "builds.db",
        repository_layouts={IVY_STAGING_REPO: "ivy-default"},
        acting_user="releaser",
    )


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    return lambda: PROMOTION_TIME


@pytest.fixture
def orchestrator(
    registry: SQLiteBuildRegistry,
    repository: FileSystemRepository,
    promotion_settings: PromotionSettings,
    fixed_clock: Callable[[], datetime],
) -> PromotionOrchestrator:
    """Provide an orchestrator wired to the temp store and registry."""
    return PromotionOrchestrator(
        registry,
        repository,
        StaticIdentity("releaser"),
        settings=promotion_settings,
        clock=fixed_clock,
    )


# ---------------------------------------------------------------------------
# Staging factories
# ---------------------------------------------------------------------------


@pytest.fixture
def stage_file(repository: FileSystemRepository) -> Callable[..., FileInfo]:
    """Factory fixture: deploy a staged file tagged with its build properties."""

    def _factory(
        path: str,
        content: bytes | str,
        repo: str = STAGING_REPO,
        build_name: str = "acme",
        build_number: str = "7",
    ) -> FileInfo:
        repo_path = RepoPath.create(repo, path)
        repository.deploy(repo_path, content).unwrap()
        repository.set_property(repo_path, "build.name", build_name)
        repository.set_property(repo_path, "build.number", build_number)
        info = repository.get_file_info(repo_path)
        assert info is not None
        return info

    return _factory


@pytest.fixture
def make_context() -> Callable[..., PromotionContext]:
    """Factory fixture: build a PromotionContext with sensible defaults."""

    def _factory(
        snapshot_expression: str = "SNAPSHOT",
        target_repository: str = RELEASE_REPO,
        build_number: str = "7",
        **overrides: Any,
    ) -> PromotionContext:
        request = PromotionRequest(
            build_name="acme",
            build_number=build_number,
            snapshot_expression=snapshot_expression,
            target_repository=target_repository,
        )
        defaults: dict[str, Any] = {
            "request": request,
            "release_number": f"{build_number}-r",
            "timestamp": PROMOTION_TIME,
        }
        defaults.update(overrides)
        return PromotionContext(**defaults)

    return _factory


def artifact_for(info: FileInfo, type_name: str) -> Artifact:
    """Build-info artifact entry describing a staged file."""
    return Artifact(name=info.name, type=type_name, sha1=info.sha1, md5=info.md5)


@pytest.fixture
def acme_files(stage_file: Callable[..., FileInfo]) -> dict[str, FileInfo]:
    """Stage the files of the two-module acme/7 build."""
    return {
        "lib_jar": stage_file("com/acme/lib/1.0-SNAPSHOT/lib-1.0-SNAPSHOT.jar", b"lib jar bytes"),
        "lib_pom": stage_file("com/acme/lib/1.0-SNAPSHOT/lib-1.0-SNAPSHOT.pom", LIB_POM),
        "app_jar": stage_file("com/acme/app/1.0-SNAPSHOT/app-1.0-SNAPSHOT.jar", b"app jar bytes"),
        "app_pom": stage_file("com/acme/app/1.0-SNAPSHOT/app-1.0-SNAPSHOT.pom", APP_POM),
    }


@pytest.fixture
def acme_build(acme_files: dict[str, FileInfo]) -> DetailedBuild:
    """The acme/7 build-info: ``app`` depends on ``lib`` and on commons-lang3."""
    lib_jar = acme_files["lib_jar"]
    return DetailedBuild(
        name="acme",
        number="7",
        started="2024-05-01T10:00:00+00:00",
        agent="maven/3.9",
        modules=[
            Module(
                id="com.acme:lib:1.0-SNAPSHOT",
                artifacts=[
                    artifact_for(lib_jar, "jar"),
                    artifact_for(acme_files["lib_pom"], "pom"),
                ],
            ),
            Module(
                id="com.acme:app:1.0-SNAPSHOT",
                artifacts=[
                    artifact_for(acme_files["app_jar"], "jar"),
                    artifact_for(acme_files["app_pom"], "pom"),
                ],
                dependencies=[
                    Dependency(
                        id="com.acme:lib:1.0-SNAPSHOT",
                        sha1=lib_jar.sha1,
                        md5=lib_jar.md5,
                        type="jar",
                        scopes=["compile"],
                    ),
                    EXTERNAL_DEPENDENCY,
                ],
            ),
        ],
    )


@pytest.fixture
def recorded_acme_build(
    registry: SQLiteBuildRegistry, acme_build: DetailedBuild
) -> DetailedBuild:
    """The acme/7 build staged and saved in the registry."""
    registry.save(acme_build)
    return acme_build
