"""
Snapshot/Restore system for agentprep.

Backs up the files setup is about to change so they can be put back
exactly, even from a later process:

- Copies of the hooks directory, package.json and commitlint configs
- Paths that did not exist are recorded so restore removes them
- A manifest.json inside each backup location describes the copy
"""

from .models import Snapshot, SnapshotEntry, EntryKind, BACKUP_PREFIX, MANIFEST_FILE
from .capture import SnapshotCapture
from .restore import SnapshotRestore
from .manager import SnapshotStore, watched_items

__all__ = [
    'Snapshot',
    'SnapshotEntry',
    'EntryKind',
    'BACKUP_PREFIX',
    'MANIFEST_FILE',
    'SnapshotCapture',
    'SnapshotRestore',
    'SnapshotStore',
    'watched_items',
]
