"""
Hook steps - stop git hooks from running while the agent works.

Two independent mechanisms:
- HooksPathRedirectStep points core.hooksPath at a discard target
  (local and global scope) so git runs no hooks at all
- HookScriptNeutralizeStep overwrites every husky hook with a no-op
  script carrying a marker, so tools that call hooks directly do nothing
"""

import os
import shutil
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..protocol.errors import CommandError, RestorationError
from ..snapshot.models import Snapshot
from ..snapshot.restore import SnapshotRestore, remove_path
from ..ui.console import ConsoleLogger
from ..vcs.git import GitClient, ConfigScope, HOOKS_PATH_KEY, hooks_disabled_path
from .base import ReversibleStep, StepContext


HOOK_MARKER = "Disabled by agentprep"
NOOP_HOOK_CONTENT = f"#!/usr/bin/env sh\n# {HOOK_MARKER}\nexit 0\n"

COMMON_HOOKS = [
    "pre-commit",
    "commit-msg",
    "pre-push",
    "post-checkout",
    "post-commit",
    "post-merge",
    "pre-rebase",
]


def unset_hooks_path(git: GitClient) -> List[Tuple[str, str]]:
    """
    Unset core.hooksPath at local and global scope.

    Each scope is attempted regardless of the other. Returns
    (scope, error) pairs for scopes where the unset failed; a key that
    was not set is not a failure.
    """
    failures = []
    for scope in (ConfigScope.LOCAL, ConfigScope.GLOBAL):
        try:
            git.unset_config(HOOKS_PATH_KEY, scope)
        except CommandError as e:
            failures.append((f"{scope.value}:{HOOKS_PATH_KEY}", str(e)))
    return failures


class HookScripts:
    """Reads and rewrites the scripts in a hooks directory."""

    def __init__(
        self,
        working_directory: Path,
        directory: str = ".husky",
        backup_directory: str = ".husky.backup",
        logger: Optional[ConsoleLogger] = None,
    ):
        self.working_directory = Path(working_directory)
        self.hooks_dir = self.working_directory / directory
        self.backup_dir = self.working_directory / backup_directory
        self.logger = logger or ConsoleLogger(quiet=True)

    def detect_hooks(self) -> List[str]:
        """Hook script names, skipping hidden entries, husky's ``_`` and docs."""
        if not self.hooks_dir.is_dir():
            return []
        hooks = []
        for entry in sorted(self.hooks_dir.iterdir()):
            name = entry.name
            if name.startswith(".") or name == "_" or name.endswith((".md", ".txt")):
                continue
            if entry.is_file():
                hooks.append(name)
        return hooks

    def hook_status(self) -> Dict[str, bool]:
        """Map each hook to whether it carries the marker."""
        status = {}
        for hook in self.detect_hooks():
            status[hook] = self._has_marker(self.hooks_dir / hook)
        return status

    def is_disabled(self) -> bool:
        """True when every present hook carries the marker. Never raises."""
        try:
            return all(self.hook_status().values())
        except OSError:
            return False

    def _has_marker(self, path: Path) -> bool:
        try:
            return HOOK_MARKER in path.read_text(errors="replace")
        except OSError:
            return False

    # =========================================================================
    # Forward
    # =========================================================================

    def backup(self) -> Optional[Path]:
        """Copy the hooks directory to its sibling backup, replacing a stale one."""
        if not self.hooks_dir.is_dir():
            self.logger.info("No hooks to backup")
            return None
        remove_path(self.backup_dir)
        shutil.copytree(self.hooks_dir, self.backup_dir, symlinks=True)
        self.logger.info(f"Hooks backed up to {self.backup_dir}")
        return self.backup_dir

    def neutralize(self) -> List[str]:
        """Overwrite every detected hook with the no-op script."""
        hooks = self.detect_hooks()
        for hook in hooks:
            self._write_noop(self.hooks_dir / hook)
            self.logger.debug(f"Disabled hook: {hook}")
        return hooks

    def create_noop_hooks(self) -> List[str]:
        """Write no-op scripts for common hooks that do not exist yet."""
        self.hooks_dir.mkdir(parents=True, exist_ok=True)
        created = []
        for hook in COMMON_HOOKS:
            path = self.hooks_dir / hook
            if path.exists():
                continue
            self._write_noop(path)
            created.append(hook)
        return created

    def _write_noop(self, path: Path):
        # Write a fresh file rather than through a symlink
        if path.is_symlink():
            path.unlink()
        path.write_text(NOOP_HOOK_CONTENT)
        os.chmod(path, 0o755)

    # =========================================================================
    # Inverse
    # =========================================================================

    def restore_from_snapshot(self, snapshot: Snapshot) -> bool:
        """
        Put the hooks directory and its backup sibling back as captured.

        If the snapshot's copy of the hooks directory is unusable, the
        sibling backup is swapped in instead. The sibling entry is only
        restored once the hooks directory is back, since the sibling may
        hold the last intact copy of the hooks.

        Returns:
            False if the snapshot has no entry for the hooks directory

        Raises:
            RestorationError: the hooks directory could not be restored
                from either source, or the sibling entry failed
        """
        hooks_entry = snapshot.entry_for(self.hooks_dir)
        if hooks_entry is None:
            return False

        restorer = SnapshotRestore()
        try:
            restorer.restore_entry(hooks_entry)
        except (OSError, shutil.Error, ValueError) as e:
            self.logger.warn(f"Snapshot copy of {self.hooks_dir} is unusable ({e}); trying {self.backup_dir}")
            if not self.restore_from_backup_dir():
                raise RestorationError([(hooks_entry.original_path, str(e))])

        backup_entry = snapshot.entry_for(self.backup_dir)
        if backup_entry is not None:
            try:
                restorer.restore_entry(backup_entry)
            except (OSError, shutil.Error, ValueError) as e:
                raise RestorationError([(backup_entry.original_path, str(e))])
        return True

    def restore_from_backup_dir(self) -> bool:
        """
        Swap the sibling backup back into place.

        Returns:
            False when there is no backup (not an error)
        """
        if not self.backup_dir.is_dir():
            self.logger.info("No backup found - hooks were not backed up")
            return False
        remove_path(self.hooks_dir)
        shutil.copytree(self.backup_dir, self.hooks_dir, symlinks=True)
        remove_path(self.backup_dir)
        self.logger.info("Hooks restored successfully")
        return True


def hook_scripts_for(ctx: StepContext) -> HookScripts:
    hooks = ctx.config.hooks
    return HookScripts(ctx.working_directory, hooks.directory, hooks.backup_directory, ctx.logger)


class HooksPathRedirectStep(ReversibleStep):
    """core.hooksPath -> discard target, at local and global scope."""

    name = "hooks-path"
    title = "Redirecting git hooks path"

    def enabled(self, ctx: StepContext) -> bool:
        return ctx.config.hooks.disable

    def apply(self, ctx: StepContext):
        sentinel = hooks_disabled_path()
        ctx.git.set_config(HOOKS_PATH_KEY, sentinel, ConfigScope.LOCAL)
        ctx.git.set_config(HOOKS_PATH_KEY, sentinel, ConfigScope.GLOBAL)
        ctx.logger.info(f"Git hooks path set to {sentinel}")

    def revert(self, ctx: StepContext):
        failures = unset_hooks_path(ctx.git)
        if failures:
            raise RestorationError(failures)
        ctx.logger.info("Git hooks path unset")


class HookScriptNeutralizeStep(ReversibleStep):
    """Overwrite husky hooks with marked no-op scripts."""

    name = "hook-scripts"
    title = "Disabling git hooks"

    def enabled(self, ctx: StepContext) -> bool:
        return ctx.config.hooks.disable

    def apply(self, ctx: StepContext):
        scripts = hook_scripts_for(ctx)
        scripts.backup()
        disabled = scripts.neutralize()
        if disabled:
            ctx.logger.info(f"Disabled {len(disabled)} hooks")
        else:
            ctx.logger.info("No hooks found to disable")

        if ctx.config.hooks.create_noop:
            created = scripts.create_noop_hooks()
            ctx.logger.info(f"Created {len(created)} no-op hooks")

    def revert(self, ctx: StepContext):
        scripts = hook_scripts_for(ctx)
        if ctx.snapshot is not None and scripts.restore_from_snapshot(ctx.snapshot):
            ctx.logger.info("Hooks restored from snapshot")
            return
        scripts.restore_from_backup_dir()
