"""
Snapshot store - high-level snapshot operations for a working directory.
"""

import shutil
import time
from pathlib import Path
from typing import List, Optional, Tuple

from ..protocol.errors import CaptureError, ManifestNotFoundError
from ..vcs.config_state import ConfigState
from .models import Snapshot, EntryKind, BACKUP_PREFIX, MANIFEST_FILE
from .capture import SnapshotCapture, WatchedItem
from .restore import SnapshotRestore


COMMITLINT_CONFIGS = [
    "commitlint.config.js",
    "commitlint.config.ts",
    "commitlint.config.json",
    ".commitlintrc.js",
    ".commitlintrc.ts",
    ".commitlintrc.json",
    ".commitlintrc",
]

PACKAGE_DESCRIPTOR = "package.json"


def watched_items(
    working_directory: Path,
    hooks_directory: str = ".husky",
    hooks_backup_directory: str = ".husky.backup",
) -> List[WatchedItem]:
    """The paths setup may change, in capture order."""
    root = Path(working_directory)
    items: List[WatchedItem] = [
        (root / hooks_directory, EntryKind.DIRECTORY),
        (root / hooks_backup_directory, EntryKind.DIRECTORY),
        (root / PACKAGE_DESCRIPTOR, EntryKind.FILE),
    ]
    items.extend((root / name, EntryKind.FILE) for name in COMMITLINT_CONFIGS)
    return items


class SnapshotStore:
    """Owns backup locations under one root directory."""

    def __init__(
        self,
        working_directory: Path,
        backup_root: Optional[Path] = None,
        prefix: str = BACKUP_PREFIX,
    ):
        """
        Initialize snapshot store.

        Args:
            working_directory: Project whose files are watched
            backup_root: Where backup locations are created (default: working directory)
            prefix: Name prefix shared by every backup location
        """
        self.working_directory = Path(working_directory)
        self.backup_root = Path(backup_root) if backup_root else self.working_directory
        self.prefix = prefix

        self._capture = SnapshotCapture(self.backup_root, prefix)
        self._restore = SnapshotRestore()

    # =========================================================================
    # Core Operations
    # =========================================================================

    def capture(
        self,
        items: Optional[List[WatchedItem]] = None,
        config_state: Optional[ConfigState] = None,
    ) -> Snapshot:
        """
        Capture watched paths and persist the manifest inside the location.

        Raises:
            CaptureError: with ``partial`` set when something was already copied
        """
        if items is None:
            items = watched_items(self.working_directory)

        snapshot = self._capture.capture(items, config_state=config_state)
        try:
            snapshot.save(self.manifest_path(snapshot.location))
        except (OSError, TypeError, ValueError) as e:
            raise CaptureError(f"Failed to write backup manifest: {e}", partial=snapshot)
        return snapshot

    def restore(self, snapshot: Snapshot) -> List[str]:
        """
        Restore every entry and delete the location.

        Raises:
            RestorationError: per-entry failures (location is kept)
        """
        return self._restore.restore(snapshot)

    def discard(self, snapshot: Snapshot):
        """Throw away a snapshot without restoring it."""
        self._restore.discard(snapshot)

    def load_manifest(self, location: str) -> Snapshot:
        """
        Load the snapshot persisted at ``location``.

        Raises:
            ManifestNotFoundError: manifest missing or unparsable
        """
        path = self.manifest_path(location)
        if not path.is_file():
            raise ManifestNotFoundError(str(location))
        try:
            return Snapshot.load(path)
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise ManifestNotFoundError(str(location), reason=str(e))

    def expire(self, max_age_hours: float = 24) -> List[str]:
        """
        Delete backup locations older than ``max_age_hours``.

        Returns:
            Locations removed
        """
        cutoff = time.time() - max_age_hours * 3600
        removed = []
        for location, mtime in self.list_locations():
            if mtime < cutoff:
                shutil.rmtree(location, ignore_errors=True)
                if not location.exists():
                    removed.append(str(location))
        return removed

    # =========================================================================
    # Query Operations
    # =========================================================================

    def manifest_path(self, location: str) -> Path:
        return Path(location) / MANIFEST_FILE

    def list_locations(self) -> List[Tuple[Path, float]]:
        """Backup locations under the root with their modification times."""
        if not self.backup_root.is_dir():
            return []
        found = []
        for child in self.backup_root.iterdir():
            if child.name.startswith(f"{self.prefix}-") and child.is_dir():
                try:
                    found.append((child, child.stat().st_mtime))
                except OSError:
                    continue
        return sorted(found, key=lambda item: item[1])
