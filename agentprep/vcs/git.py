"""
GitClient - the git operations agentprep needs, over CommandRunner.
"""

import sys
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from ..protocol.errors import CommandError
from ..runner.command import CommandRunner, CommandResult


HOOKS_PATH_KEY = "core.hooksPath"

# Sentinel hooks path that points git at nothing
HOOKS_DISABLED_PATH = "/dev/null"
WINDOWS_HOOKS_DISABLED_PATH = "NUL"

# `git config --unset` exit status when the key was not set
UNSET_NOTHING_SET = 5


def hooks_disabled_path(platform: Optional[str] = None) -> str:
    """Platform-specific "discard" target for core.hooksPath."""
    platform = platform or sys.platform
    if platform.startswith("win"):
        return WINDOWS_HOOKS_DISABLED_PATH
    return HOOKS_DISABLED_PATH


class ConfigScope(str, Enum):
    """git config file a key is read from / written to."""
    LOCAL = "local"
    GLOBAL = "global"

    @property
    def flag(self) -> str:
        return f"--{self.value}"


class GitClient:
    """Thin wrapper around the git executable for one working directory."""

    def __init__(
        self,
        working_directory: Union[str, Path] = ".",
        runner: Optional[CommandRunner] = None,
        timeout: int = 30,
    ):
        self.working_directory = Path(working_directory)
        self.runner = runner or CommandRunner(default_timeout=timeout)
        self.timeout = timeout

    def run(self, *args: str, check: bool = True) -> CommandResult:
        return self.runner.run(
            ["git", *args],
            cwd=self.working_directory,
            timeout=self.timeout,
            check=check,
        )

    # =========================================================================
    # Environment checks
    # =========================================================================

    def version(self) -> str:
        return self.run("--version").stdout.strip()

    def is_work_tree(self) -> bool:
        try:
            result = self.run("rev-parse", "--is-inside-work-tree", check=False)
        except CommandError:
            return False
        return result.ok and result.stdout.strip() == "true"

    # =========================================================================
    # Config get/set/unset
    # =========================================================================

    def get_config(self, key: str, scope: ConfigScope = ConfigScope.LOCAL) -> Optional[str]:
        """
        Read a config key.

        Returns:
            The value (possibly an empty string), or None when unset

        Raises:
            CommandError: git failed for a reason other than "not set"
        """
        result = self.run("config", scope.flag, "--get", key, check=False)
        if result.returncode == 1:
            return None
        if not result.ok:
            raise CommandError(result.args, result.returncode, result.stderr)
        value = result.stdout
        if value.endswith("\n"):
            value = value[:-1]
        return value

    def set_config(self, key: str, value: str, scope: ConfigScope = ConfigScope.LOCAL):
        self.run("config", scope.flag, key, value)

    def unset_config(self, key: str, scope: ConfigScope = ConfigScope.LOCAL) -> bool:
        """
        Unset a config key.

        Unsetting a key that is not set is not an error; multi-valued keys
        are removed entirely.

        Returns:
            True if git removed the key, False if it was not set

        Raises:
            CommandError: git failed for any other reason (locked or
                unwritable config file, not a repository)
        """
        result = self.run("config", scope.flag, "--unset-all", key, check=False)
        if result.returncode == UNSET_NOTHING_SET:
            return False
        if not result.ok:
            raise CommandError(result.args, result.returncode, result.stderr)
        return True

    # =========================================================================
    # Remote access
    # =========================================================================

    def verify_push_access(self) -> bool:
        """Dry-run a push; never raises."""
        try:
            return self.run("push", "--dry-run", check=False).ok
        except CommandError:
            return False

    def status_porcelain(self) -> str:
        return self.run("status", "--porcelain").stdout
