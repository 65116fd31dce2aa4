"""Integration tests: full promotion through store, registry and CLI.

Exercises the complete workflow end to end:
1. Stage a two-module Maven build and promote it through the CLI
2. Verify released paths, rewritten POMs, properties and the release record
3. Verify inter-module dependency relinking against the released files
4. Promote an Ivy build with 14-digit integration revisions
"""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from releaseforge.cli.app import app
from releaseforge.core.build_registry import SQLiteBuildRegistry
from releaseforge.core.hasher import sha1_hex
from releaseforge.core.metadata_rewriter import parse_document
from releaseforge.core.repository import FileSystemRepository
from releaseforge.models.build import Artifact, Dependency, DetailedBuild, Module
from releaseforge.models.promotion import PromotionRequest
from releaseforge.models.repo import RepoPath

runner = CliRunner()

RELEASE = "libs-release-local"
POM_NS = "{http://maven.apache.org/POM/4.0.0}"


def _released(path: str) -> RepoPath:
    return RepoPath.create(RELEASE, path)


class TestCliPromotion:
    """acme/7 staged on disk, imported and promoted with the CLI."""

    @pytest.fixture
    def workspace(self, tmp_path: Path, acme_build: DetailedBuild) -> list[str]:
        build_file = tmp_path / "acme-7.json"
        build_file.write_text(acme_build.model_dump_json(), encoding="utf-8")
        paths = ["--root", str(tmp_path / "repositories"), "--registry", str(tmp_path / "cli.db")]
        imported = runner.invoke(app, ["import-build", str(build_file), *paths])
        assert imported.exit_code == 0, imported.output
        return paths

    def test_promote_command(self, tmp_path: Path, workspace: list[str]):
        result = runner.invoke(
            app,
            ["promote", "acme", "7", "-s", "SNAPSHOT", "-t", RELEASE, "--ci-user", "jenkins", *workspace],
        )

        assert result.exit_code == 0, result.output
        assert "successfully promoted" in result.output

        store = FileSystemRepository(tmp_path / "repositories")
        registry = SQLiteBuildRegistry(tmp_path / "cli.db", store)
        runs = registry.find("acme", "7-r")
        assert len(runs) == 1
        release = registry.load_detailed(runs[0])
        assert release.release_statuses[0].ci_user == "jenkins"
        assert len(registry.list_artifact_files(runs[0])) == 4

        listed = runner.invoke(app, ["builds", "acme", *workspace])
        assert "7-r" in listed.output

    def test_second_promote_command_fails(self, workspace: list[str]):
        args = ["promote", "acme", "7", "-s", "SNAPSHOT", "-t", RELEASE, *workspace]
        assert runner.invoke(app, args).exit_code == 0

        again = runner.invoke(app, args)

        assert again.exit_code == 1
        assert "already promoted" in again.output


class TestMavenPromotion:
    """Released layout, manifests and dependency graph of acme/7-r."""

    @pytest.fixture
    def promoted(self, orchestrator, registry, recorded_acme_build) -> DetailedBuild:
        result = orchestrator.promote(
            PromotionRequest(
                build_name="acme",
                build_number="7",
                snapshot_expression="SNAPSHOT",
                target_repository=RELEASE,
            )
        )
        assert result.ok, result.message
        return registry.load_detailed(registry.find("acme", "7-r")[0])

    def test_released_paths(self, promoted, repository):
        children = repository.list_children(_released("com/acme/lib/1.0"))
        assert children == [_released("com/acme/lib/1.0/lib-1.0.jar"), _released("com/acme/lib/1.0/lib-1.0.pom")]
        assert repository.exists(_released("com/acme/app/1.0/app-1.0.jar"))

    def test_rewritten_poms(self, promoted, repository):
        lib = parse_document(repository.get_content(_released("com/acme/lib/1.0/lib-1.0.pom")))
        app_pom = parse_document(repository.get_content(_released("com/acme/app/1.0/app-1.0.pom")))
        assert lib.find(f"{POM_NS}version").text == "1.0"
        assert app_pom.find(f"{POM_NS}version").text == "1.0"
        versions = [
            d.find(f"{POM_NS}version").text
            for d in app_pom.findall(f"{POM_NS}dependencies/{POM_NS}dependency")
        ]
        assert versions == ["1.0", "3.14.0"]

    def test_module_artifacts_point_at_released_files(self, promoted, repository):
        for module in promoted.modules:
            for artifact in module.artifacts:
                matches = [
                    f for f in repository.search_by_properties({"build.number": "7-r"})
                    if f.name == artifact.name
                ]
                assert len(matches) == 1
                assert matches[0].sha1 == artifact.sha1

    def test_internal_dependency_relinked(self, promoted, repository):
        app = promoted.modules[1]
        internal, external = app.dependencies
        released_jar = repository.get_file_info(_released("com/acme/lib/1.0/lib-1.0.jar"))
        assert internal.id == "com.acme:lib:1.0"
        assert internal.sha1 == released_jar.sha1
        assert internal.scopes == ["compile"]
        assert external.id == "org.apache.commons:commons-lang3:3.14.0"
        assert external.sha1 == sha1_hex(b"commons-lang3 jar")

    def test_release_properties(self, promoted, repository):
        props = repository.get_properties(_released("com/acme/app/1.0/app-1.0.pom"))
        assert props["build.name"] == ["acme"]
        assert props["build.number"] == ["7-r"]
        assert props["build.status"] == ["release"]
        assert props["build.timestamp"] == ["1714566600000"]


IVY_DESCRIPTOR = """<?xml version="1.0" encoding="UTF-8"?>
<ivy-module version="2.0">
  <info organisation="acme" module="{module}" revision="1.0-20240101120000" status="integration"/>
  <dependencies>
{deps}
  </dependencies>
</ivy-module>
"""


class TestIvyPromotion:
    """d14 promotion of an Ivy build from an ivy-default repository."""

    @pytest.fixture
    def ivy_build(self, registry, stage_file) -> DetailedBuild:
        version_dir = "1.0-20240101120000"
        lib_jar = stage_file(
            f"acme/lib/{version_dir}/jars/lib-{version_dir}.jar", b"ivy lib", repo="ivy-snapshots"
        )
        app_jar = stage_file(
            f"acme/app/{version_dir}/jars/app-{version_dir}.jar", b"ivy app", repo="ivy-snapshots"
        )
        descriptor = IVY_DESCRIPTOR.format(
            module="app",
            deps=f'    <dependency org="acme" name="lib" rev="{version_dir}"/>',
        )
        app_ivy = stage_file(
            f"acme/app/{version_dir}/ivys/ivy-{version_dir}.xml", descriptor, repo="ivy-snapshots"
        )
        build = DetailedBuild(
            name="acme",
            number="7",
            started="t0",
            modules=[
                Module(
                    id=f"acme:lib:{version_dir}",
                    artifacts=[Artifact(name=lib_jar.name, type="jar", sha1=lib_jar.sha1)],
                ),
                Module(
                    id=f"acme:app:{version_dir}",
                    artifacts=[
                        Artifact(name=app_jar.name, type="jar", sha1=app_jar.sha1),
                        Artifact(name=app_ivy.name, type="ivy", sha1=app_ivy.sha1),
                    ],
                    dependencies=[Dependency(id=f"acme:lib:{version_dir}", sha1=lib_jar.sha1)],
                ),
            ],
        )
        registry.save(build)
        return build

    def test_promote(self, orchestrator, registry, repository, ivy_build):
        result = orchestrator.promote(
            PromotionRequest(
                build_name="acme",
                build_number="7",
                snapshot_expression="d14",
                target_repository="ivy-releases",
            )
        )

        assert result.ok, result.message
        assert sorted(p.path for p in result.released_paths) == [
            "acme/app/1.0/ivys/ivy-1.0.xml",
            "acme/app/1.0/jars/app-1.0.jar",
            "acme/lib/1.0/jars/lib-1.0.jar",
        ]

        info = parse_document(
            repository.get_content(RepoPath.create("ivy-releases", "acme/app/1.0/ivys/ivy-1.0.xml"))
        )
        assert info.find("info").get("revision") == "1.0"
        assert info.find("info").get("status") == "release"
        assert info.find("info").get("publication") == "20240501123000"
        assert info.find("dependencies/dependency").get("rev") == "1.0"

        release = registry.load_detailed(registry.find("acme", "7-r")[0])
        assert release.modules[1].dependencies[0].id == "acme:lib:1.0"
