"""
RuntimeScanner - Reports which language runtimes are on PATH.

Only used for warnings; agentprep never installs runtimes.
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, Optional, Any

from ..protocol.errors import CommandError
from ..runner.command import CommandRunner


@dataclass
class RuntimeStatus:
    installed: bool = False
    version: Optional[str] = None


@dataclass
class RuntimeInfo:
    node: RuntimeStatus = field(default_factory=RuntimeStatus)
    npm: RuntimeStatus = field(default_factory=RuntimeStatus)
    flutter: RuntimeStatus = field(default_factory=RuntimeStatus)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class RuntimeScanner:
    """Probes ``<tool> --version`` for node, npm and flutter."""

    def __init__(self, runner: Optional[CommandRunner] = None):
        self.runner = runner or CommandRunner()

    def scan(self) -> RuntimeInfo:
        return RuntimeInfo(
            node=self._probe("node"),
            npm=self._probe("npm"),
            flutter=self._probe("flutter"),
        )

    def _probe(self, executable: str) -> RuntimeStatus:
        try:
            result = self.runner.run([executable, "--version"], check=False)
        except CommandError:
            return RuntimeStatus()
        if not result.ok:
            return RuntimeStatus()
        lines = result.stdout.strip().splitlines()
        return RuntimeStatus(installed=True, version=lines[0].strip() if lines else None)
