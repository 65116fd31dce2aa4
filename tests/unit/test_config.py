"""Unit tests for env-driven promotion settings."""

from __future__ import annotations

from pathlib import Path

from releaseforge.config import DEFAULT_SNAPSHOT_EXPRESSIONS, PromotionSettings
from releaseforge.core.identity import StaticIdentity, SystemIdentity, identity_from_settings
from releaseforge.core.orchestrator import PromotionOrchestrator
from releaseforge.models.repo import RepoPath


class TestDefaults:
    def test_defaults(self):
        settings = PromotionSettings()
        assert settings.release_number_suffix == "-r"
        assert settings.release_status == "Released"
        assert settings.default_layout == "maven-2-default"
        assert settings.snapshot_expressions == DEFAULT_SNAPSHOT_EXPRESSIONS

    def test_release_number(self):
        assert PromotionSettings().release_number("42") == "42-r"

    def test_repository_layouts_reach_the_store(self, tmp_path: Path):
        settings = PromotionSettings(
            repository_root=tmp_path / "repos",
            registry_path=tmp_path / "builds.db",
            repository_layouts={"ivy-local": "ivy-default"},
        )
        store = PromotionOrchestrator.from_settings(settings).store
        ivy = store.get_layout_info(RepoPath.create("ivy-local", "acme/lib/1.0/jars/lib-1.0.jar"))
        maven = store.get_layout_info(RepoPath.create("libs-release-local", "acme/lib/1.0/lib-1.0.jar"))
        assert ivy.valid and ivy.module == "lib"
        assert maven.valid and maven.organization == "acme"
        assert not store.get_layout_info(RepoPath.create("libs-release-local", "acme/lib/1.0/jars/lib-1.0.jar")).valid


class TestEnvironment:
    """RELEASEFORGE_* variables override defaults."""

    def test_scalar_overrides(self, monkeypatch):
        monkeypatch.setenv("RELEASEFORGE_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("RELEASEFORGE_REPOSITORY_ROOT", "/srv/artifacts")
        monkeypatch.setenv("RELEASEFORGE_RELEASE_NUMBER_SUFFIX", "-release")

        settings = PromotionSettings()

        assert settings.log_level == "DEBUG"
        assert settings.repository_root == Path("/srv/artifacts")
        assert settings.release_number("7") == "7-release"

    def test_json_mapping_override(self, monkeypatch):
        monkeypatch.setenv("RELEASEFORGE_REPOSITORY_LAYOUTS", '{"ivy-snapshots": "ivy-default"}')
        assert PromotionSettings().repository_layouts == {"ivy-snapshots": "ivy-default"}

    def test_defaults_are_not_shared(self):
        first = PromotionSettings()
        first.snapshot_expressions["custom"] = "x"
        assert "custom" not in PromotionSettings().snapshot_expressions


class TestActingUser:
    def test_configured_user(self):
        identity = identity_from_settings("releaser")
        assert isinstance(identity, StaticIdentity)
        assert identity.current_username() == "releaser"

    def test_falls_back_to_process_login(self, monkeypatch):
        monkeypatch.setattr("getpass.getuser", lambda: "builder")
        identity = identity_from_settings("")
        assert isinstance(identity, SystemIdentity)
        assert identity.current_username() == "builder"
