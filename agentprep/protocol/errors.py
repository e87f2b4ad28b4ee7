"""
Error taxonomy for agentprep.

Internal helpers raise these; pipeline boundaries (setup, cleanup,
emergency cleanup) catch them and convert them into result objects.

AgentPrepError
├── PreconditionError     - fatal, nothing mutated yet
├── CaptureError          - fatal, nothing mutated yet
├── MutationError         - fatal, triggers rollback
├── RestorationError      - non-fatal during cleanup
├── ManifestNotFoundError - manifest absent or unparsable
├── HandoffError          - durable handoff store unreadable
└── CommandError          - external command failed
"""

from enum import Enum
from typing import List, Optional, Sequence, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from ..snapshot.models import Snapshot


class ErrorType(str, Enum):
    """Classes of failure surfaced in structured results."""
    PRECONDITION = "PRECONDITION"
    CAPTURE = "CAPTURE"
    MUTATION = "MUTATION"
    VERIFICATION = "VERIFICATION"
    RESTORATION = "RESTORATION"
    HANDOFF = "HANDOFF"


class AgentPrepError(Exception):
    """Base class for all agentprep errors."""
    error_type: Optional[ErrorType] = None


class PreconditionError(AgentPrepError):
    """Working directory or required tool is unusable."""
    error_type = ErrorType.PRECONDITION

    def __init__(self, message: str, problems: Optional[List[str]] = None):
        super().__init__(message)
        self.problems = problems or []


class CaptureError(AgentPrepError):
    """Backup could not be taken.

    ``partial`` holds whatever was captured before the failure so the
    caller can discard the half-written backup location.
    """
    error_type = ErrorType.CAPTURE

    def __init__(self, message: str, partial: Optional["Snapshot"] = None):
        super().__init__(message)
        self.partial = partial


class MutationError(AgentPrepError):
    """A forward step failed."""
    error_type = ErrorType.MUTATION

    def __init__(self, step_name: str, cause: Exception):
        super().__init__(f"Step '{step_name}' failed: {cause}")
        self.step_name = step_name
        self.cause = cause


class RestorationError(AgentPrepError):
    """One or more snapshot entries could not be restored."""
    error_type = ErrorType.RESTORATION

    def __init__(self, failures: Sequence[Tuple[str, str]]):
        self.failures = list(failures)
        summary = "; ".join(f"{path}: {msg}" for path, msg in self.failures)
        super().__init__(f"Failed to restore {len(self.failures)} item(s): {summary}")


class ManifestNotFoundError(AgentPrepError):
    """No usable manifest at the given backup location."""
    error_type = ErrorType.RESTORATION

    def __init__(self, location: str, reason: str = ""):
        message = f"Backup manifest not found at {location}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.location = location


class HandoffError(AgentPrepError):
    """The durable handoff record could not be read or written."""
    error_type = ErrorType.HANDOFF


class CommandError(AgentPrepError):
    """An external command failed, timed out, or could not be started."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: Optional[int] = None,
        stderr: str = "",
        reason: str = "",
    ):
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr.strip()
        cmd_str = " ".join(self.command)
        if reason:
            message = f"Command '{cmd_str}' {reason}"
        else:
            message = f"Command '{cmd_str}' exited with {returncode}"
        if self.stderr:
            message = f"{message}: {self.stderr}"
        super().__init__(message)
