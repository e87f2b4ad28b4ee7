"""
Structured results returned by the setup and cleanup pipelines.

These are the only thing callers see: the CLI prints them, publishes
them as CI outputs, and derives its exit status from ``success``.
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional, Any
from datetime import datetime
import json


@dataclass
class SnapshotIdentity:
    """Public identity of a snapshot, safe to print and persist."""
    id: str
    location: str
    timestamp: str = ""


@dataclass
class StepRecord:
    """Outcome of one reversible step during setup or rollback."""
    name: str
    applied: bool = False
    reverted: bool = False
    error: Optional[str] = None


@dataclass
class SetupResult:
    """Result of a setup run."""
    success: bool = False
    environment_ready: bool = False
    snapshot: Optional[SnapshotIdentity] = None
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    # Rollback errors are kept apart from the cause that triggered rollback
    rollback_errors: List[str] = field(default_factory=list)
    rolled_back: bool = False
    final_state: str = ""
    error_type: Optional[str] = None
    steps: List[StepRecord] = field(default_factory=list)
    hooks_disabled: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)


@dataclass
class CleanupResult:
    """Result of a cleanup (or emergency cleanup) run."""
    success: bool = False
    restored: bool = False
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    emergency: bool = False
    skipped: bool = False           # nothing to clean up
    snapshot_used: bool = False
    finished_at: str = ""

    def finish(self) -> "CleanupResult":
        self.finished_at = datetime.now().isoformat()
        return self

    def report(self) -> Dict[str, Any]:
        """Summary of the run, logged at the end of cleanup."""
        return {
            "success": self.success,
            "restored": self.restored,
            "emergency": self.emergency,
            "backup_used": self.snapshot_used,
            "errors_count": len(self.errors),
            "warnings_count": len(self.warnings),
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "timestamp": self.finished_at or datetime.now().isoformat(),
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)
