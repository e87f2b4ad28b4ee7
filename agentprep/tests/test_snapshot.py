"""Tests for the snapshot store: capture, restore, manifests and expiry."""

import os
import time
from pathlib import Path

import pytest

from agentprep.protocol.errors import (
    AgentPrepError,
    CaptureError,
    ManifestNotFoundError,
    RestorationError,
)
from agentprep.snapshot import (
    EntryKind,
    Snapshot,
    SnapshotEntry,
    SnapshotStore,
    watched_items,
)
from agentprep.tests.mocks import tree_contents, write_husky, write_package_json
from agentprep.vcs.config_state import ConfigState


def _populate(repo: Path):
    write_husky(repo)
    write_package_json(repo)
    (repo / "commitlint.config.js").write_text("module.exports = {extends: ['@commitlint/config-conventional']};\n")


class TestSnapshotCapture:

    def test_round_trip_is_byte_identical(self, repo):
        _populate(repo)
        before = tree_contents(repo)
        store = SnapshotStore(repo)

        snapshot = store.capture(watched_items(repo))
        restored = store.restore(snapshot)

        assert tree_contents(repo) == before
        assert not Path(snapshot.location).exists()
        assert store.list_locations() == []
        assert str((repo / ".husky").absolute()) in restored

    def test_restore_undoes_changes_made_after_capture(self, repo):
        _populate(repo)
        before = tree_contents(repo)
        store = SnapshotStore(repo)
        snapshot = store.capture(watched_items(repo))

        (repo / ".husky" / "pre-commit").write_text("exit 0\n")
        (repo / ".husky" / "post-merge").write_text("exit 0\n")
        (repo / "package.json").write_text("{}\n")
        (repo / "commitlint.config.js").unlink()

        store.restore(snapshot)
        assert tree_contents(repo) == before

    def test_absent_paths_are_recorded_and_removed_on_restore(self, repo):
        store = SnapshotStore(repo)
        snapshot = store.capture(watched_items(repo))

        hooks = snapshot.entry_for(repo / ".husky")
        assert hooks is not None
        assert hooks.existed is False
        assert hooks.stored_path is None

        write_husky(repo)
        (repo / ".commitlintrc").write_text("{}")
        store.restore(snapshot)

        assert not (repo / ".husky").exists()
        assert not (repo / ".commitlintrc").exists()

    def test_on_disk_kind_wins(self, repo):
        (repo / ".husky").write_text("not a directory\n")
        snapshot = SnapshotStore(repo).capture(watched_items(repo))
        assert snapshot.entry_for(repo / ".husky").kind == EntryKind.FILE

    def test_files_carry_checksums(self, repo):
        write_package_json(repo)
        snapshot = SnapshotStore(repo).capture(watched_items(repo))
        entry = snapshot.entry_for(repo / "package.json")
        assert entry.kind == EntryKind.FILE
        assert entry.checksum and len(entry.checksum) == 64

    def test_config_state_is_embedded(self, repo):
        state = ConfigState(user_name="Dev", extra={"global:pull.rebase": "true"})
        snapshot = SnapshotStore(repo).capture(watched_items(repo), config_state=state)
        assert snapshot.config_state == state

    def test_entries_are_read_only_after_capture(self, repo):
        snapshot = SnapshotStore(repo).capture(watched_items(repo))
        with pytest.raises(RuntimeError):
            snapshot.add_entry(SnapshotEntry(str(repo / "x"), None, EntryKind.FILE, existed=False))

    def test_stored_path_must_be_inside_location(self, tmp_path):
        snapshot = Snapshot.create(tmp_path)
        with pytest.raises(ValueError):
            snapshot.add_entry(SnapshotEntry(str(tmp_path / "a"), str(tmp_path / "elsewhere"), EntryKind.FILE))

    def test_unusable_backup_root_is_a_capture_error(self, repo):
        blocker = repo / "not-a-dir"
        blocker.write_text("")
        store = SnapshotStore(repo, backup_root=blocker)
        with pytest.raises(CaptureError):
            store.capture(watched_items(repo))

    def test_locations_are_unique(self, repo):
        store = SnapshotStore(repo)
        first = store.capture(watched_items(repo))
        second = store.capture(watched_items(repo))
        assert first.id != second.id
        assert first.location != second.location
        assert Path(first.location).name.startswith(".agentprep-backup-")


class TestSnapshotRestore:

    def test_restoring_twice_is_rejected(self, repo):
        store = SnapshotStore(repo)
        snapshot = store.capture(watched_items(repo))
        store.restore(snapshot)
        with pytest.raises(AgentPrepError):
            store.restore(snapshot)

    def test_discarded_snapshot_cannot_be_restored(self, repo):
        store = SnapshotStore(repo)
        snapshot = store.capture(watched_items(repo))
        store.discard(snapshot)
        assert not Path(snapshot.location).exists()
        with pytest.raises(AgentPrepError):
            store.restore(snapshot)

    def test_checksum_mismatch_fails_entry_and_keeps_location(self, repo):
        write_package_json(repo)
        store = SnapshotStore(repo)
        snapshot = store.capture(watched_items(repo))
        entry = snapshot.entry_for(repo / "package.json")
        Path(entry.stored_path).write_text("tampered\n")

        with pytest.raises(RestorationError) as excinfo:
            store.restore(snapshot)

        assert [path for path, _ in excinfo.value.failures] == [entry.original_path]
        assert Path(snapshot.location).exists()
        assert not snapshot.released

    def test_one_failing_entry_does_not_stop_the_rest(self, repo):
        _populate(repo)
        store = SnapshotStore(repo)
        snapshot = store.capture(watched_items(repo))
        os.unlink(snapshot.entry_for(repo / "package.json").stored_path)
        (repo / ".husky" / "pre-commit").write_text("changed\n")

        with pytest.raises(RestorationError) as excinfo:
            store.restore(snapshot)

        assert len(excinfo.value.failures) == 1
        assert "npx lint-staged" in (repo / ".husky" / "pre-commit").read_text()


class TestSnapshotManifest:

    def test_manifest_matches_captured_snapshot(self, repo):
        _populate(repo)
        store = SnapshotStore(repo)
        snapshot = store.capture(watched_items(repo), config_state=ConfigState(user_email="a@b.c"))

        loaded = store.load_manifest(snapshot.location)
        assert loaded == snapshot
        assert loaded.config_state.user_email == "a@b.c"

    def test_json_round_trip(self, repo):
        _populate(repo)
        snapshot = SnapshotStore(repo).capture(watched_items(repo))
        assert Snapshot.from_json(snapshot.to_json()) == snapshot

    def test_missing_manifest(self, repo):
        with pytest.raises(ManifestNotFoundError):
            SnapshotStore(repo).load_manifest(str(repo / ".agentprep-backup-gone"))

    def test_unparsable_manifest(self, repo):
        store = SnapshotStore(repo)
        snapshot = store.capture(watched_items(repo))
        store.manifest_path(snapshot.location).write_text("{not json")
        with pytest.raises(ManifestNotFoundError):
            store.load_manifest(snapshot.location)

    def test_existing_entry_without_copy_is_rejected(self):
        with pytest.raises(ValueError):
            SnapshotEntry.from_dict({"original_path": "/x", "stored_path": None, "kind": "file", "existed": True})


class TestExpire:

    def test_only_old_locations_are_removed(self, repo):
        store = SnapshotStore(repo)
        old = store.capture(watched_items(repo))
        fresh = store.capture(watched_items(repo))
        two_days_ago = time.time() - 48 * 3600
        os.utime(old.location, (two_days_ago, two_days_ago))

        removed = store.expire(max_age_hours=24)

        assert [Path(p).resolve() for p in removed] == [Path(old.location)]
        assert not Path(old.location).exists()
        assert Path(fresh.location).exists()

    def test_unrelated_directories_are_left_alone(self, repo):
        other = repo / "node_modules"
        other.mkdir()
        os.utime(other, (0, 0))
        assert SnapshotStore(repo).expire(max_age_hours=0) == []
        assert other.exists()
