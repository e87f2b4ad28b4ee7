"""
Protocol module - errors and results exchanged at pipeline boundaries.
"""

from .errors import (
    ErrorType,
    AgentPrepError,
    PreconditionError,
    CaptureError,
    MutationError,
    RestorationError,
    ManifestNotFoundError,
    HandoffError,
    CommandError,
)
from .result import SnapshotIdentity, StepRecord, SetupResult, CleanupResult

__all__ = [
    # Errors
    "ErrorType",
    "AgentPrepError",
    "PreconditionError",
    "CaptureError",
    "MutationError",
    "RestorationError",
    "ManifestNotFoundError",
    "HandoffError",
    "CommandError",
    # Results
    "SnapshotIdentity",
    "StepRecord",
    "SetupResult",
    "CleanupResult",
]
