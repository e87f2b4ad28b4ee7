"""
Runner module - Executes commands and the setup/cleanup pipelines.

- CommandRunner: subprocess wrapper with per-call env overlay
- StateMachine: setup pipeline states
- runner.setup.SetupPipeline: capture, mutate, verify, roll back on failure
- runner.cleanup.CleanupPipeline / EmergencyCleanup: undo setup later

The pipelines import most of the package, so import them from their
modules rather than from here.
"""

from .command import CommandRunner, CommandResult, ToolEnvironment
from .state import StateMachine, SetupState, TRANSITIONS

__all__ = [
    "CommandRunner",
    "CommandResult",
    "ToolEnvironment",
    "StateMachine",
    "SetupState",
    "TRANSITIONS",
]
