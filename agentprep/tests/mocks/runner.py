"""
FakeRunner - records commands instead of running package managers.
"""

from typing import Dict, List, Optional

from agentprep.protocol.errors import CommandError
from agentprep.runner.command import CommandResult


class FakeRunner:
    """
    Drop-in for CommandRunner.

    ``failing`` names executables whose commands exit 1; ``broken``
    makes every command fail to start.
    """

    def __init__(self, failing: Optional[List[str]] = None, broken: bool = False):
        self.failing = set(failing or [])
        self.broken = broken
        self.calls: List[Dict] = []

    def run(self, args, cwd=None, env=None, timeout=None, check=True) -> CommandResult:
        args = [str(a) for a in args]
        self.calls.append({"args": args, "cwd": cwd, "env": env, "timeout": timeout})
        if self.broken:
            raise CommandError(args, reason="could not be started (fake)")
        returncode = 1 if args[0] in self.failing else 0
        result = CommandResult(args=args, returncode=returncode, stderr="fake failure" if returncode else "")
        if check and not result.ok:
            raise CommandError(args, returncode, result.stderr)
        return result

    def is_available(self, executable: str) -> bool:
        return not self.broken and executable not in self.failing

    @property
    def commands(self) -> List[List[str]]:
        return [call["args"] for call in self.calls]
