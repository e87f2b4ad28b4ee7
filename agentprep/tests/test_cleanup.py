"""
Tests for cleanup, emergency cleanup and the fallback between them.

Setup and cleanup are always built from separate objects that share
nothing but the handoff file, the way two processes would.
"""

import json
import shutil
from pathlib import Path

from agentprep.config import Config
from agentprep.handoff import FileHandoffStore
from agentprep.runner.cleanup import CleanupPipeline, EmergencyCleanup, run_with_fallback
from agentprep.runner.setup import SetupPipeline
from agentprep.snapshot import SnapshotStore
from agentprep.steps import HookScripts
from agentprep.tests.mocks import (
    FakeRunner,
    SAMPLE_HOOKS,
    SAMPLE_PACKAGE,
    git,
    git_config,
    make_config,
    quiet_logger,
    tree_contents,
    write_husky,
    write_package_json,
)
from agentprep.vcs import ConfigStateCapture, GitClient


def _setup(repo, handoff_path, **overrides) -> Config:
    config = make_config(repo, handoff_path)
    config.auth.token = overrides.get("token", "")
    config.auth.repository = overrides.get("repository", "")
    config.hooks.create_noop = overrides.get("create_noop", False)
    result = SetupPipeline(config, logger=quiet_logger()).run()
    assert result.success, result.errors
    return config


def _cleanup(repo, handoff_path, **config_overrides):
    config = make_config(repo, handoff_path)
    for name, value in config_overrides.items():
        setattr(config.backup, name, value)
    return CleanupPipeline(config, logger=quiet_logger())


def _emergency(repo, handoff_path):
    config = make_config(repo, handoff_path)
    return EmergencyCleanup(config, logger=quiet_logger(), handoff=FileHandoffStore(repo, handoff_path))


def _backup_location(handoff_path) -> Path:
    return Path(json.loads(handoff_path.read_text())["backup-location"])


def _prepare_project(repo):
    write_husky(repo)
    write_package_json(repo)
    (repo / ".commitlintrc.json").write_text('{"extends": ["@commitlint/config-conventional"]}\n')
    git(repo, "config", "--global", "user.name", "Jane Dev")
    git(repo, "config", "--global", "user.email", "jane@example.com")
    git(repo, "remote", "add", "origin", "https://github.com/acme/app.git")


class TestCleanupPipeline:

    def test_separate_invocation_restores_everything(self, repo, handoff_path):
        _prepare_project(repo)
        config_before = ConfigStateCapture(GitClient(repo)).capture()
        files_before = tree_contents(repo)

        _setup(repo, handoff_path, token="ghs_secret", repository="acme/app")
        assert git_config(repo, "remote.origin.url").startswith("https://x-access-token:")
        assert git_config(repo, "credential.helper", "global") == "store"

        result = _cleanup(repo, handoff_path).run()

        assert result.success
        assert result.restored
        assert result.snapshot_used
        assert not result.emergency
        assert ConfigStateCapture(GitClient(repo)).capture() == config_before
        assert tree_contents(repo) == files_before
        assert not handoff_path.exists()
        assert SnapshotStore(repo).list_locations() == []

    def test_falls_back_to_manifest_when_embedded_snapshot_is_damaged(self, repo, handoff_path):
        _prepare_project(repo)
        files_before = tree_contents(repo)
        _setup(repo, handoff_path)

        data = json.loads(handoff_path.read_text())
        data["original-configs"] = "{truncated"
        handoff_path.write_text(json.dumps(data))

        result = _cleanup(repo, handoff_path).run()

        assert result.success
        assert result.snapshot_used
        assert tree_contents(repo) == files_before
        assert git_config(repo, "user.name", "global") == "Jane Dev"

    def test_missing_snapshot_still_reenables_hooks(self, repo, handoff_path):
        _prepare_project(repo)
        _setup(repo, handoff_path)
        location = json.loads(handoff_path.read_text())["backup-location"]
        handoff_path.write_text(json.dumps({"cleanup-required": "true", "backup-location": location + "-gone"}))

        result = _cleanup(repo, handoff_path).run()

        assert result.success
        assert not result.snapshot_used
        assert result.warnings
        assert git_config(repo, "core.hooksPath") is None
        assert not HookScripts(repo).is_disabled()
        assert json.loads((repo / "package.json").read_text()) == SAMPLE_PACKAGE

    def test_deleted_backup_location_falls_back_to_sibling_backup(self, repo, handoff_path):
        _prepare_project(repo)
        _setup(repo, handoff_path)
        shutil.rmtree(_backup_location(handoff_path))

        result = _cleanup(repo, handoff_path).run()

        assert result.success
        assert result.snapshot_used
        for name, body in SAMPLE_HOOKS.items():
            assert (repo / ".husky" / name).read_text() == body
        assert (repo / ".husky" / "_" / "husky.sh").exists()
        assert not (repo / ".husky.backup").exists()
        assert not HookScripts(repo).is_disabled()
        assert not any("still disabled" in w for w in result.warnings)
        assert git_config(repo, "core.hooksPath") is None
        assert git_config(repo, "user.name", "global") == "Jane Dev"
        assert json.loads((repo / "package.json").read_text()) == SAMPLE_PACKAGE
        assert any("Backup copy missing" in e for e in result.errors)

    def test_unrecoverable_hooks_are_reported(self, repo, handoff_path):
        _prepare_project(repo)
        _setup(repo, handoff_path)
        shutil.rmtree(_backup_location(handoff_path))
        shutil.rmtree(repo / ".husky.backup")

        result = _cleanup(repo, handoff_path).run()

        assert result.success
        assert any(e.startswith("Restoring git hooks") for e in result.errors)
        assert any("'pre-commit' is still disabled" in w for w in result.warnings)
        assert git_config(repo, "core.hooksPath") is None

    def test_access_is_verified_after_cleanup(self, repo, handoff_path):
        write_husky(repo)
        _setup(repo, handoff_path)
        cleanup = _cleanup(repo, handoff_path)
        cleanup.config.verify.access_check = True

        result = cleanup.run()

        assert result.success
        assert any("access verification failed after cleanup" in w for w in result.warnings)

    def test_nothing_to_clean_up(self, repo, handoff_path):
        result = _cleanup(repo, handoff_path).run()
        assert result.success
        assert result.skipped
        assert not result.restored

    def test_second_cleanup_is_a_no_op(self, repo, handoff_path):
        _prepare_project(repo)
        _setup(repo, handoff_path)
        assert _cleanup(repo, handoff_path).run().success

        again = _cleanup(repo, handoff_path).run()
        assert again.success
        assert again.skipped

    def test_fabricated_hooks_are_deleted(self, repo, handoff_path):
        _setup(repo, handoff_path, create_noop=True)
        assert (repo / ".husky" / "pre-commit").exists()

        result = _cleanup(repo, handoff_path).run()

        assert result.success
        assert not (repo / ".husky").exists()

    def test_restore_files_disabled_discards_backup(self, repo, handoff_path):
        _prepare_project(repo)
        _setup(repo, handoff_path)

        result = _cleanup(repo, handoff_path, restore_files=False).run()

        assert result.success
        assert SnapshotStore(repo).list_locations() == []
        assert json.loads((repo / "package.json").read_text()) == SAMPLE_PACKAGE
        assert not HookScripts(repo).is_disabled()

    def test_corrupt_handoff_is_a_hard_failure(self, repo, handoff_path):
        handoff_path.parent.mkdir(parents=True, exist_ok=True)
        handoff_path.write_text("not json at all")
        result = _cleanup(repo, handoff_path).run()
        assert not result.success
        assert result.errors


class TestEmergencyCleanup:

    def test_deleted_handoff_still_reenables_hooks(self, repo, handoff_path):
        _prepare_project(repo)
        _setup(repo, handoff_path)
        handoff_path.unlink()
        assert HookScripts(repo).is_disabled()

        result = _emergency(repo, handoff_path).run()

        assert result.emergency
        assert result.success
        assert not HookScripts(repo).is_disabled()
        assert all(not disabled for disabled in HookScripts(repo).hook_status().values())
        assert git_config(repo, "core.hooksPath") is None
        assert git_config(repo, "core.hooksPath", "global") is None
        assert json.loads((repo / "package.json").read_text()) == SAMPLE_PACKAGE

    def test_project_scripts_survive_emergency_cleanup(self, repo, handoff_path):
        package = dict(SAMPLE_PACKAGE, scripts={"test": "jest", "test.disabled": "mocha", "prepare": "husky install"})
        write_package_json(repo, package)
        _setup(repo, handoff_path)
        handoff_path.unlink()

        result = _emergency(repo, handoff_path).run()

        assert result.success
        assert json.loads((repo / "package.json").read_text()) == package

    def test_never_raises_when_git_is_unusable(self, repo, handoff_path):
        config = make_config(repo, handoff_path)
        emergency = EmergencyCleanup(
            config,
            logger=quiet_logger(),
            git=GitClient(repo, runner=FakeRunner(broken=True)),
        )

        result = emergency.run()

        assert not result.success
        assert any("Re-enable git hooks" in e for e in result.errors)
        assert result.finished_at

    def test_never_raises_on_missing_directory(self, tmp_path, handoff_path):
        config = make_config(tmp_path / "vanished", handoff_path)
        result = EmergencyCleanup(config, logger=quiet_logger()).run()
        assert result.emergency


class TestFallback:

    def test_corrupt_handoff_falls_back_to_emergency(self, repo, handoff_path):
        _prepare_project(repo)
        _setup(repo, handoff_path)
        handoff_path.write_text("{{{ garbage")

        config = make_config(repo, handoff_path)
        cleanup = CleanupPipeline(config, logger=quiet_logger())
        emergency = EmergencyCleanup(config, logger=quiet_logger(), handoff=cleanup.handoff)
        result = run_with_fallback(cleanup, emergency)

        assert result.emergency
        assert any("unreadable" in e for e in result.errors)
        assert not HookScripts(repo).is_disabled()
        assert git_config(repo, "core.hooksPath") is None
        assert not handoff_path.exists()

    def test_successful_cleanup_skips_emergency(self, repo, handoff_path):
        _prepare_project(repo)
        _setup(repo, handoff_path)
        cleanup = _cleanup(repo, handoff_path)
        result = run_with_fallback(cleanup, _emergency(repo, handoff_path))
        assert result.success
        assert not result.emergency
