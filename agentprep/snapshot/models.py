"""
Data models for the snapshot/restore system.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Any
from pathlib import Path
import json
import uuid

from ..protocol.result import SnapshotIdentity
from ..vcs.config_state import ConfigState


BACKUP_PREFIX = ".agentprep-backup"
MANIFEST_FILE = "manifest.json"


class EntryKind(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"


@dataclass
class SnapshotEntry:
    """One watched path and where its copy lives."""
    original_path: str
    stored_path: Optional[str]             # None when the path did not exist
    kind: EntryKind
    checksum: Optional[str] = None         # sha256 of file bytes, files only
    existed: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "original_path": self.original_path,
            "stored_path": self.stored_path,
            "kind": self.kind.value,
            "checksum": self.checksum,
            "existed": self.existed,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SnapshotEntry':
        existed = bool(data.get("existed", True))
        stored_path = data.get("stored_path")
        if existed and not stored_path:
            raise ValueError(f"entry for {data.get('original_path')} has no stored copy")
        return cls(
            original_path=str(data["original_path"]),
            stored_path=stored_path,
            kind=EntryKind(data["kind"]),
            checksum=data.get("checksum"),
            existed=existed,
        )


@dataclass
class Snapshot:
    """
    One backup operation: copies of the watched paths plus git config state.

    Entries are appended during capture only; ``seal()`` freezes them.
    Once restored or discarded a snapshot is released and cannot be
    restored again.
    """

    # Identity
    id: str
    timestamp: str                         # ISO timestamp, informational
    location: str                          # directory owned by the store

    entries: List[SnapshotEntry] = field(default_factory=list)
    config_state: Optional[ConfigState] = None

    _sealed: bool = field(default=False, repr=False, compare=False)
    _released: bool = field(default=False, repr=False, compare=False)

    @classmethod
    def create(cls, backup_root: Path, prefix: str = BACKUP_PREFIX) -> 'Snapshot':
        """Create a new snapshot with generated ID, timestamp and location."""
        snapshot_id = str(uuid.uuid4())
        return cls(
            id=snapshot_id,
            timestamp=datetime.now().isoformat(),
            location=str(Path(backup_root).resolve() / f"{prefix}-{snapshot_id}"),
        )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def add_entry(self, entry: SnapshotEntry):
        if self._sealed:
            raise RuntimeError("Snapshot entries are read-only after capture")
        if entry.stored_path is not None and not self.contains(entry.stored_path):
            raise ValueError(f"Stored path {entry.stored_path} is outside {self.location}")
        self.entries.append(entry)

    def seal(self):
        self._sealed = True

    def release(self):
        self._sealed = True
        self._released = True

    @property
    def released(self) -> bool:
        return self._released

    def contains(self, path: str) -> bool:
        """Check that ``path`` lies within this snapshot's location."""
        location = Path(self.location).resolve()
        try:
            Path(path).resolve().relative_to(location)
        except ValueError:
            return False
        return True

    def entry_for(self, original_path: Path) -> Optional[SnapshotEntry]:
        target = str(Path(original_path).resolve())
        for entry in self.entries:
            if str(Path(entry.original_path).resolve()) == target:
                return entry
        return None

    def identity(self) -> SnapshotIdentity:
        return SnapshotIdentity(id=self.id, location=self.location, timestamp=self.timestamp)

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "location": self.location,
            "entries": [e.to_dict() for e in self.entries],
            "config_state": self.config_state.to_dict() if self.config_state else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Snapshot':
        """
        Create from dictionary (JSON deserialization).

        Raises:
            ValueError, KeyError, TypeError: structure is not a snapshot
        """
        if not isinstance(data, dict):
            raise TypeError("snapshot must be an object")
        snapshot = cls(
            id=str(data["id"]),
            timestamp=str(data.get("timestamp", "")),
            location=str(data["location"]),
        )
        if not snapshot.id or not snapshot.location:
            raise ValueError("snapshot id and location are required")
        for raw in data.get("entries") or []:
            snapshot.add_entry(SnapshotEntry.from_dict(raw))
        if data.get("config_state") is not None:
            snapshot.config_state = ConfigState.from_dict(data["config_state"])
        snapshot.seal()
        return snapshot

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_json(cls, text: str) -> 'Snapshot':
        return cls.from_dict(json.loads(text))

    def save(self, path: Path) -> None:
        """Save snapshot to JSON file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: Path) -> 'Snapshot':
        """Load snapshot from JSON file."""
        with open(path) as f:
            return cls.from_dict(json.load(f))
