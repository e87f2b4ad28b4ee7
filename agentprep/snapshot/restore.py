"""
Snapshot restore - puts watched paths back the way they were captured.
"""

import shutil
from pathlib import Path
from typing import List

from ..protocol.errors import AgentPrepError, RestorationError
from .capture import file_checksum
from .models import Snapshot, SnapshotEntry, EntryKind


def remove_path(path: Path):
    """Remove a file, symlink or directory tree if present."""
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.is_dir():
        shutil.rmtree(path)


class SnapshotRestore:
    """Restores watched paths from a snapshot."""

    def restore(self, snapshot: Snapshot, delete_location: bool = True) -> List[str]:
        """
        Restore every entry, best-effort.

        Strategy:
        1. For each entry, check the stored copy (and its checksum)
        2. Remove whatever is at the original path now
        3. Copy the stored copy back, or leave the path absent if it
           did not exist at capture time
        4. Delete the backup location once every entry is restored

        A failing entry does not stop the rest. If any entry failed the
        location is kept so a retry still has the content.

        Returns:
            Original paths that were restored

        Raises:
            RestorationError: one or more entries failed
        """
        if snapshot.released:
            raise AgentPrepError(f"Snapshot {snapshot.id} was already restored or discarded")

        restored = []
        failures = []
        for entry in snapshot.entries:
            try:
                self.restore_entry(entry)
                restored.append(entry.original_path)
            except (OSError, shutil.Error, ValueError) as e:
                failures.append((entry.original_path, str(e)))

        if failures:
            raise RestorationError(failures)

        if delete_location:
            self.discard(snapshot)
        else:
            snapshot.release()
        return restored

    def restore_entry(self, entry: SnapshotEntry):
        original = Path(entry.original_path)

        if not entry.existed:
            remove_path(original)
            return

        stored = Path(entry.stored_path)
        if not stored.exists() and not stored.is_symlink():
            raise FileNotFoundError(f"Backup copy missing: {stored}")
        if entry.kind == EntryKind.FILE and entry.checksum and not stored.is_symlink():
            if file_checksum(stored) != entry.checksum:
                raise ValueError(f"Checksum mismatch for backup copy {stored}")

        remove_path(original)
        original.parent.mkdir(parents=True, exist_ok=True)
        if entry.kind == EntryKind.DIRECTORY:
            shutil.copytree(stored, original, symlinks=True)
        else:
            shutil.copy2(stored, original, follow_symlinks=False)

    def discard(self, snapshot: Snapshot):
        """Delete the backup location and release the snapshot."""
        snapshot.release()
        shutil.rmtree(snapshot.location, ignore_errors=True)
