"""
Snapshot capture - copies watched files and directories into a backup location.
"""

import hashlib
import shutil
from pathlib import Path
from typing import Iterable, Optional, Tuple, Union

from ..protocol.errors import CaptureError
from ..vcs.config_state import ConfigState
from .models import Snapshot, SnapshotEntry, EntryKind, BACKUP_PREFIX


WatchedItem = Tuple[Union[str, Path], EntryKind]


def file_checksum(path: Path) -> str:
    """sha256 of a file's bytes."""
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()


class SnapshotCapture:
    """Copies a fixed set of paths into a fresh, uniquely named location."""

    def __init__(self, backup_root: Path, prefix: str = BACKUP_PREFIX):
        """
        Initialize snapshot capture.

        Args:
            backup_root: Directory under which backup locations are created
            prefix: Name prefix for backup locations
        """
        self.backup_root = Path(backup_root)
        self.prefix = prefix

    def capture(
        self,
        items: Iterable[WatchedItem],
        config_state: Optional[ConfigState] = None,
    ) -> Snapshot:
        """
        Capture the given paths.

        Paths that do not exist are recorded with ``existed=False`` so
        restoring removes whatever was created there later.

        Args:
            items: (path, kind) pairs; the on-disk kind wins for existing paths
            config_state: Git config state to embed

        Returns:
            Sealed Snapshot

        Raises:
            CaptureError: location could not be created or a copy failed.
                ``partial`` holds the entries copied so far.
        """
        snapshot = Snapshot.create(self.backup_root, self.prefix)
        location = Path(snapshot.location)
        try:
            location.mkdir(parents=True, exist_ok=False)
        except OSError as e:
            raise CaptureError(f"Cannot create backup location {location}: {e}")

        store_dir = location / "items"
        for index, (raw_path, kind) in enumerate(items):
            path = Path(raw_path).absolute()
            if not path.exists() and not path.is_symlink():
                snapshot.add_entry(SnapshotEntry(
                    original_path=str(path),
                    stored_path=None,
                    kind=kind,
                    existed=False,
                ))
                continue

            stored = store_dir / f"{index:02d}-{path.name.lstrip('.') or 'item'}"
            try:
                store_dir.mkdir(exist_ok=True)
                if path.is_dir() and not path.is_symlink():
                    kind = EntryKind.DIRECTORY
                    shutil.copytree(path, stored, symlinks=True)
                    checksum = None
                else:
                    kind = EntryKind.FILE
                    shutil.copy2(path, stored, follow_symlinks=False)
                    checksum = file_checksum(path) if not path.is_symlink() else None
            except (OSError, shutil.Error) as e:
                raise CaptureError(f"Failed to back up {path}: {e}", partial=snapshot)

            snapshot.add_entry(SnapshotEntry(
                original_path=str(path),
                stored_path=str(stored),
                kind=kind,
                checksum=checksum,
            ))

        snapshot.config_state = config_state
        snapshot.seal()
        return snapshot
