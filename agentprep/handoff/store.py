"""
Durable handoff - how setup tells a later cleanup process what to undo.

The record is three string keys:
    cleanup-required   "true" while there is something to undo
    backup-location    the snapshot's backup directory
    original-configs   the full snapshot as JSON

Backends:
- FileHandoffStore: one JSON document per working directory under ~/.agentprep
- GitHubActionsHandoffStore: action state ($GITHUB_STATE / STATE_* env vars)
"""

import hashlib
import json
import os
import tempfile
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, MutableMapping, Optional

from ..protocol.errors import HandoffError
from ..snapshot.models import Snapshot


CLEANUP_REQUIRED = "cleanup-required"
BACKUP_LOCATION = "backup-location"
ORIGINAL_CONFIGS = "original-configs"
HANDOFF_KEYS = (CLEANUP_REQUIRED, BACKUP_LOCATION, ORIGINAL_CONFIGS)

IS_POST_KEY = "isPost"


def default_handoff_dir() -> Path:
    return Path.home() / ".agentprep" / "handoff"


@dataclass
class HandoffRecord:
    """What setup leaves behind for cleanup."""
    cleanup_required: bool = False
    backup_location: str = ""
    snapshot_json: str = ""

    @classmethod
    def for_snapshot(cls, snapshot: Snapshot) -> 'HandoffRecord':
        return cls(
            cleanup_required=True,
            backup_location=snapshot.location,
            snapshot_json=json.dumps(snapshot.to_dict()),
        )

    def embedded_snapshot(self) -> Optional[Snapshot]:
        """The serialized snapshot, or None if absent or not structurally valid."""
        if not self.snapshot_json:
            return None
        try:
            return Snapshot.from_json(self.snapshot_json)
        except (ValueError, KeyError, TypeError):
            return None

    def to_state(self) -> Dict[str, str]:
        return {
            CLEANUP_REQUIRED: "true" if self.cleanup_required else "",
            BACKUP_LOCATION: self.backup_location,
            ORIGINAL_CONFIGS: self.snapshot_json,
        }

    @classmethod
    def from_state(cls, values: Mapping[str, str]) -> 'HandoffRecord':
        return cls(
            cleanup_required=(values.get(CLEANUP_REQUIRED) or "").strip().lower() == "true",
            backup_location=values.get(BACKUP_LOCATION) or "",
            snapshot_json=values.get(ORIGINAL_CONFIGS) or "",
        )


class HandoffStore(ABC):
    """Key/value persistence that outlives the setup process."""

    @abstractmethod
    def read(self) -> HandoffRecord:
        """Raises HandoffError if the store cannot be read."""

    @abstractmethod
    def write(self, record: HandoffRecord):
        """Raises HandoffError if the record cannot be persisted."""

    def clear(self):
        self.write(HandoffRecord())

    @property
    def description(self) -> str:
        return type(self).__name__


class FileHandoffStore(HandoffStore):
    """JSON file keyed by the working directory's absolute path."""

    def __init__(self, working_directory: Path, path: Optional[Path] = None):
        self.working_directory = Path(working_directory).absolute()
        if path is None:
            digest = hashlib.sha256(str(self.working_directory).encode()).hexdigest()[:16]
            path = default_handoff_dir() / f"{digest}.json"
        self.path = Path(path)

    @property
    def description(self) -> str:
        return f"file {self.path}"

    def read(self) -> HandoffRecord:
        if not self.path.exists():
            return HandoffRecord()
        try:
            with open(self.path) as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise HandoffError(f"Handoff file {self.path} is unreadable: {e}")
        if not isinstance(data, dict):
            raise HandoffError(f"Handoff file {self.path} does not hold a record")
        return HandoffRecord.from_state({k: str(v) for k, v in data.items() if k in HANDOFF_KEYS})

    def write(self, record: HandoffRecord):
        data = dict(record.to_state())
        data["working-directory"] = str(self.working_directory)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".handoff-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w") as f:
                    json.dump(data, f, indent=2)
                os.replace(tmp, self.path)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
        except OSError as e:
            raise HandoffError(f"Cannot write handoff file {self.path}: {e}")

    def clear(self):
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise HandoffError(f"Cannot remove handoff file {self.path}: {e}")


def _append_delimited(path: str, values: Mapping[str, str]):
    """Append ``name<<delimiter`` blocks, the format of $GITHUB_STATE and $GITHUB_OUTPUT."""
    with open(path, "a", encoding="utf-8") as f:
        for key, value in values.items():
            delimiter = f"ghadelimiter_{uuid.uuid4()}"
            f.write(f"{key}<<{delimiter}\n{value}\n{delimiter}\n")


class GitHubActionsHandoffStore(HandoffStore):
    """
    Action state: written to $GITHUB_STATE in the main step, exposed to
    the post step as STATE_<key> environment variables.
    """

    def __init__(self, environ: Optional[MutableMapping[str, str]] = None):
        self.environ = os.environ if environ is None else environ

    @property
    def description(self) -> str:
        return "GitHub Actions state"

    def read(self) -> HandoffRecord:
        return HandoffRecord.from_state({
            key: self.environ.get(f"STATE_{key}", "") for key in HANDOFF_KEYS
        })

    def write(self, record: HandoffRecord):
        self.save_state(record.to_state())

    def save_state(self, values: Mapping[str, str]):
        state_file = self.environ.get("GITHUB_STATE")
        if not state_file:
            raise HandoffError("GITHUB_STATE is not set; cannot persist action state")
        try:
            _append_delimited(state_file, values)
        except OSError as e:
            raise HandoffError(f"Cannot write action state: {e}")

    def is_post(self) -> bool:
        return bool(self.environ.get(f"STATE_{IS_POST_KEY}"))

    def mark_main_ran(self):
        """Make the post step of this action see STATE_isPost."""
        self.save_state({IS_POST_KEY: "true"})


def create_store(
    backend: str,
    working_directory: Path,
    path: str = "",
    environ: Optional[MutableMapping[str, str]] = None,
) -> HandoffStore:
    """
    Pick a handoff backend.

    ``auto`` uses action state when GITHUB_STATE is set, otherwise a file.
    """
    environ = os.environ if environ is None else environ
    if backend == "auto":
        backend = "github" if environ.get("GITHUB_STATE") else "file"
    if backend == "github":
        return GitHubActionsHandoffStore(environ)
    if backend == "file":
        return FileHandoffStore(working_directory, Path(path).expanduser() if path else None)
    raise ValueError(f"Unknown handoff backend: {backend}")


def write_outputs(values: Mapping[str, str], environ: Optional[Mapping[str, str]] = None) -> bool:
    """
    Publish step outputs to $GITHUB_OUTPUT.

    Returns:
        False when not running under GitHub Actions
    """
    environ = os.environ if environ is None else environ
    output_file = environ.get("GITHUB_OUTPUT")
    if not output_file:
        return False
    _append_delimited(output_file, values)
    return True
