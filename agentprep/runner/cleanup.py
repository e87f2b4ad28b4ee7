"""
CleanupPipeline - Undo a previous setup from the durable handoff alone.

Runs in a later, separate process. Every step is attempted even when an
earlier one reported errors, so the pipeline can be re-run safely.

When the handoff cannot be read at all, EmergencyCleanup re-enables
everything it can without a snapshot.
"""

from typing import Callable, Optional

from ..config import Config
from ..handoff.store import HandoffRecord, HandoffStore, create_store
from ..protocol.errors import (
    HandoffError,
    ManifestNotFoundError,
    RestorationError,
)
from ..protocol.result import CleanupResult
from ..snapshot.manager import SnapshotStore
from ..snapshot.models import Snapshot
from ..steps.base import StepContext
from ..steps.hooks import HookScripts, hook_scripts_for, unset_hooks_path
from ..steps.lint import LintToolsStep, reenable_lint_tools
from ..ui.console import ConsoleLogger
from ..vcs.config_state import ConfigStateCapture
from ..vcs.git import GitClient
from .command import CommandRunner


class CleanupPipeline:
    """
    Reads the handoff, restores config, hooks, lint tools and files,
    then clears the handoff and sweeps old backups.
    """

    def __init__(
        self,
        config: Config,
        logger: Optional[ConsoleLogger] = None,
        runner: Optional[CommandRunner] = None,
        git: Optional[GitClient] = None,
        store: Optional[SnapshotStore] = None,
        handoff: Optional[HandoffStore] = None,
    ):
        self.config = config
        self.working_directory = config.workspace.path
        self.logger = logger or ConsoleLogger(debug=config.output.debug, quiet=config.output.quiet)
        self.runner = runner or CommandRunner(default_timeout=config.verify.timeout)
        self.git = git or GitClient(self.working_directory, self.runner, timeout=config.verify.timeout)
        self.store = store or SnapshotStore(self.working_directory)
        self.handoff = handoff or create_store(
            config.handoff.backend, self.working_directory, config.handoff.path
        )
        self.config_capture = ConfigStateCapture(self.git)

    def run(self) -> CleanupResult:
        """
        Run cleanup.

        ``success`` is False only for hard failures: the handoff could
        not be read, or a step broke down entirely. Per-entry restore
        failures are listed in ``errors`` without failing the run.
        """
        result = CleanupResult()
        with self.logger.group("Cleaning up agent environment"):
            try:
                self._run(result)
            except Exception as e:
                self.logger.error("Cleanup failed", e)
                result.errors.append(f"Unexpected error: {e}")
                result.success = False
        self.logger.debug(f"Cleanup report: {result.finish().report()}")
        return result

    def _run(self, result: CleanupResult):
        self.logger.info("Loading backup information")
        try:
            record = self.handoff.read()
        except HandoffError as e:
            self.logger.error("Cleanup record could not be read", e)
            result.errors.append(str(e))
            result.success = False
            return

        if not record.cleanup_required:
            self.logger.info("No cleanup required")
            result.success = True
            result.skipped = True
            return

        snapshot = self._load_snapshot(record, result)
        result.snapshot_used = snapshot is not None
        ctx = StepContext(
            working_directory=self.working_directory,
            config=self.config,
            git=self.git,
            runner=self.runner,
            logger=self.logger,
            snapshot=snapshot,
            config_state=snapshot.config_state if snapshot else None,
            config_capture=self.config_capture,
        )

        hard_failures = 0
        for title, action in (
            ("Restoring git configuration", self._restore_config),
            ("Restoring git hooks", self._restore_hooks),
            ("Re-enabling linting tools", self._restore_lint_tools),
            ("Restoring configuration files", self._restore_files),
        ):
            with self.logger.group(title):
                try:
                    action(ctx, result)
                except RestorationError as e:
                    for path, message in e.failures:
                        self.logger.error(f"Failed to restore {path}: {message}")
                        result.errors.append(f"{title}: {path}: {message}")
                except Exception as e:
                    self.logger.error(f"{title} failed", e)
                    result.errors.append(f"{title} failed: {e}")
                    hard_failures += 1

        # Cleared even after errors: content that is gone stays gone on retry
        try:
            self.handoff.clear()
        except HandoffError as e:
            self.logger.warn(f"Failed to clear cleanup record: {e}")
            result.errors.append(str(e))

        self._sweep(result)
        if self.config.verify.access_check and not self.git.verify_push_access():
            ctx.warn("Git access verification failed after cleanup - check the restored remote and credentials")
        result.warnings.extend(w for w in ctx.warnings if w not in result.warnings)
        result.success = hard_failures == 0
        if result.success:
            self.logger.info("Agent environment cleanup completed")

    # =========================================================================
    # Steps
    # =========================================================================

    def _load_snapshot(self, record: HandoffRecord, result: CleanupResult) -> Optional[Snapshot]:
        """Prefer the snapshot embedded in the record, then the manifest on disk."""
        snapshot = record.embedded_snapshot()
        if snapshot is not None:
            self.logger.debug("Using snapshot from cleanup record")
            return snapshot
        if record.backup_location:
            try:
                snapshot = self.store.load_manifest(record.backup_location)
                self.logger.debug(f"Loaded manifest from {record.backup_location}")
                return snapshot
            except ManifestNotFoundError as e:
                message = f"Failed to load backup information: {e}"
                self.logger.warn(message)
                result.warnings.append(message)
                return None
        message = "Cleanup record has no backup reference; restoring without a snapshot"
        self.logger.warn(message)
        result.warnings.append(message)
        return None

    def _restore_config(self, ctx: StepContext, result: CleanupResult):
        if ctx.config_state is not None:
            count = self.config_capture.restore(ctx.config_state)
            self.logger.info(f"Restored {count} git settings")
            return
        failures = unset_hooks_path(self.git)
        if failures:
            raise RestorationError(failures)
        self.logger.info("Git hooks path unset (no captured config state)")

    def _restore_hooks(self, ctx: StepContext, result: CleanupResult):
        scripts = hook_scripts_for(ctx)
        try:
            restored = False
            if ctx.snapshot is not None:
                restored = scripts.restore_from_snapshot(ctx.snapshot)
            if not restored:
                restored = scripts.restore_from_backup_dir()
            result.restored = result.restored or restored
        finally:
            still_disabled = [hook for hook, disabled in scripts.hook_status().items() if disabled]
            for hook in still_disabled:
                ctx.warn(f"Hook '{hook}' is still disabled after restore")

    def _restore_lint_tools(self, ctx: StepContext, result: CleanupResult):
        LintToolsStep().revert(ctx)

    def _restore_files(self, ctx: StepContext, result: CleanupResult):
        if ctx.snapshot is None:
            self.logger.info("No backup to restore")
            return
        if not self.config.backup.restore_files:
            self.logger.info("File restoration disabled; discarding backup")
            self.store.discard(ctx.snapshot)
            return
        restored = self.store.restore(ctx.snapshot)
        result.restored = True
        self.logger.info(f"Restored {len(restored)} backed-up paths")

    def _sweep(self, result: CleanupResult):
        try:
            removed = self.store.expire(self.config.backup.max_age_hours)
        except OSError as e:
            result.warnings.append(f"Failed to clean up old backups: {e}")
            return
        if removed:
            self.logger.info(f"Removed {len(removed)} expired backups")


class EmergencyCleanup:
    """
    Snapshot-free, best-effort undo.

    Each sub-step runs in isolation; ``run`` never raises.
    """

    def __init__(
        self,
        config: Config,
        logger: Optional[ConsoleLogger] = None,
        git: Optional[GitClient] = None,
        store: Optional[SnapshotStore] = None,
        handoff: Optional[HandoffStore] = None,
    ):
        self.config = config
        self.working_directory = config.workspace.path
        self.logger = logger or ConsoleLogger(debug=config.output.debug, quiet=config.output.quiet)
        self.git = git or GitClient(self.working_directory, timeout=config.verify.timeout)
        self.store = store or SnapshotStore(self.working_directory)
        self.handoff = handoff

    def run(self) -> CleanupResult:
        result = CleanupResult(emergency=True)
        try:
            with self.logger.group("Performing emergency cleanup"):
                self.logger.warn("Performing emergency cleanup - some changes may not be fully reverted")
                self._attempt("Re-enable git hooks", self._reenable_hooks_path, result)
                self._attempt("Restore hooks from backup", self._restore_hooks, result)
                self._attempt("Re-enable linting tools", self._reenable_lint_tools, result)
                self._attempt("Clean up old backups", self._sweep, result)
                if self.handoff is not None:
                    self._attempt("Clear cleanup record", self.handoff.clear, result)
                result.success = not result.errors
                self.logger.info("Emergency cleanup completed")
        except Exception as e:
            result.errors.append(f"Emergency cleanup failed: {e}")
            result.success = False
        return result.finish()

    def _attempt(self, title: str, action: Callable[[], Optional[bool]], result: CleanupResult):
        try:
            if action():
                result.restored = True
            self.logger.info(f"{title}: done")
        except Exception as e:
            self.logger.error(f"{title} failed", e)
            result.errors.append(f"{title} failed: {e}")

    def _reenable_hooks_path(self):
        failures = unset_hooks_path(self.git)
        if failures:
            raise RestorationError(failures)

    def _restore_hooks(self) -> bool:
        hooks = self.config.hooks
        scripts = HookScripts(self.working_directory, hooks.directory, hooks.backup_directory, self.logger)
        return scripts.restore_from_backup_dir()

    def _reenable_lint_tools(self):
        reenable_lint_tools(self.working_directory)

    def _sweep(self):
        self.store.expire(self.config.backup.max_age_hours)


def run_with_fallback(
    cleanup: CleanupPipeline,
    emergency: EmergencyCleanup,
) -> CleanupResult:
    """Run cleanup; on hard failure run emergency cleanup and merge the outcome."""
    result = cleanup.run()
    if result.success:
        return result

    cleanup.logger.warn("Standard cleanup failed, attempting emergency cleanup")
    fallback = emergency.run()
    fallback.errors = result.errors + fallback.errors
    fallback.warnings = result.warnings + fallback.warnings
    fallback.snapshot_used = result.snapshot_used
    fallback.restored = fallback.restored or result.restored
    return fallback
