"""
ReversibleStep - a forward mutation paired with its inverse.

Both directions must be safe to repeat: applying a step twice, or
reverting it twice, leaves the same external state as doing it once.
Steps keep no state of their own; everything they need arrives in the
StepContext.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from ..config import Config
from ..runner.command import CommandRunner, ToolEnvironment
from ..snapshot.models import Snapshot
from ..ui.console import ConsoleLogger
from ..vcs.config_state import ConfigState, ConfigStateCapture
from ..vcs.git import GitClient


@dataclass
class StepContext:
    """Everything a step may read or write."""
    working_directory: Path
    config: Config
    git: GitClient
    runner: CommandRunner
    logger: ConsoleLogger
    tool_env: ToolEnvironment = field(default_factory=ToolEnvironment.quiet_installs)

    # Filled in once capture has run
    snapshot: Optional[Snapshot] = None
    config_state: Optional[ConfigState] = None
    config_capture: Optional[ConfigStateCapture] = None

    warnings: List[str] = field(default_factory=list)

    def warn(self, message: str):
        self.logger.warn(message)
        self.warnings.append(message)

    def restore_config_keys(self, *keys: str):
        """Put the given ``scope:key`` settings back from the captured state."""
        if self.config_state is None or self.config_capture is None:
            self.warn(f"No captured config state; cannot restore {', '.join(keys)}")
            return
        self.config_capture.restore_keys(self.config_state, keys)


class ReversibleStep(ABC):
    """Disable something, and know how to re-enable it."""

    name: str = ""
    title: str = ""

    def enabled(self, ctx: StepContext) -> bool:
        """Whether the step runs for this configuration."""
        return True

    @abstractmethod
    def apply(self, ctx: StepContext):
        """Forward mutation. Raises on failure."""

    @abstractmethod
    def revert(self, ctx: StepContext):
        """Inverse mutation. Raises on failure."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"
