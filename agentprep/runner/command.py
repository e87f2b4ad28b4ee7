"""
CommandRunner - Opaque execution of external tools.

Only the exit code and captured stdout/stderr are consumed. Environment
tweaks for child tools are passed per call as an overlay; the process
environment itself is never modified.
"""

import os
import subprocess
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Union

from ..protocol.errors import CommandError


DEFAULT_TIMEOUT = 30  # seconds


@dataclass
class ToolEnvironment:
    """
    Variables handed to child tools so their install hooks stay quiet.

    Passed explicitly to each CommandRunner.run call that needs it.
    """
    variables: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def quiet_installs(cls) -> 'ToolEnvironment':
        """Overlay that stops husky and npm lifecycle scripts from running."""
        return cls(variables={
            "HUSKY": "0",
            "SKIP_PREPARE": "true",
            "SKIP_POSTINSTALL": "true",
            "CI": "true",
        })

    def with_vars(self, **extra: str) -> 'ToolEnvironment':
        merged = dict(self.variables)
        merged.update(extra)
        return ToolEnvironment(variables=merged)

    def as_overlay(self) -> Dict[str, str]:
        return dict(self.variables)


@dataclass
class CommandResult:
    """Captured outcome of one command."""
    args: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner:
    """Runs commands with captured output and an optional env overlay."""

    def __init__(self, default_timeout: int = DEFAULT_TIMEOUT):
        self.default_timeout = default_timeout

    def run(
        self,
        args: Sequence[str],
        cwd: Optional[Union[str, os.PathLike]] = None,
        env: Optional[Dict[str, str]] = None,
        timeout: Optional[int] = None,
        check: bool = True,
    ) -> CommandResult:
        """
        Run a command.

        Args:
            args: Executable and arguments
            cwd: Working directory for the child
            env: Variables layered over a copy of the current environment
            timeout: Seconds before the command is treated as failed
            check: Raise CommandError on non-zero exit

        Returns:
            CommandResult

        Raises:
            CommandError: non-zero exit (with check), timeout, or missing executable
        """
        args = [str(a) for a in args]
        child_env = None
        if env:
            child_env = dict(os.environ)
            child_env.update(env)

        try:
            proc = subprocess.run(
                args,
                cwd=str(cwd) if cwd is not None else None,
                env=child_env,
                capture_output=True,
                text=True,
                timeout=timeout or self.default_timeout,
            )
        except subprocess.TimeoutExpired:
            raise CommandError(args, reason=f"timed out after {timeout or self.default_timeout}s")
        except OSError as e:
            raise CommandError(args, reason=f"could not be started ({e})")

        result = CommandResult(
            args=args,
            returncode=proc.returncode,
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
        )
        if check and not result.ok:
            raise CommandError(args, result.returncode, result.stderr)
        return result

    def is_available(self, executable: str) -> bool:
        """Check that ``executable --version`` can be invoked."""
        try:
            return self.run([executable, "--version"], check=False).ok
        except CommandError:
            return False
