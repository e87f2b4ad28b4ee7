"""
Handoff module - persistence that carries a snapshot from setup to cleanup.
"""

from .store import (
    HandoffRecord,
    HandoffStore,
    FileHandoffStore,
    GitHubActionsHandoffStore,
    create_store,
    write_outputs,
    CLEANUP_REQUIRED,
    BACKUP_LOCATION,
    ORIGINAL_CONFIGS,
)

__all__ = [
    "HandoffRecord",
    "HandoffStore",
    "FileHandoffStore",
    "GitHubActionsHandoffStore",
    "create_store",
    "write_outputs",
    "CLEANUP_REQUIRED",
    "BACKUP_LOCATION",
    "ORIGINAL_CONFIGS",
]
