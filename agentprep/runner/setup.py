"""
SetupPipeline - Prepare a working directory for an automated agent.

Phases:
1. VALIDATING - Check the directory, git and configuration
2. CAPTURING - Snapshot watched files and git config, write the handoff
3. MUTATING - Apply each reversible step in order
4. VERIFYING - Confirm hooks are off and push access works (warnings only)

If a step fails, ROLLING_BACK reverts the steps that completed (newest
first), restores the snapshot and config state, then ends in FAILED.
"""

import os
from typing import List, Mapping, Optional, Tuple

from ..config import Config
from ..discovery.environment import EnvironmentScanner
from ..handoff.store import HandoffRecord, HandoffStore, create_store
from ..protocol.errors import (
    AgentPrepError,
    CaptureError,
    CommandError,
    ErrorType,
    HandoffError,
    MutationError,
    RestorationError,
)
from ..protocol.result import SetupResult, StepRecord
from ..snapshot.manager import SnapshotStore, watched_items
from ..snapshot.models import Snapshot
from ..steps import default_steps
from ..steps.base import ReversibleStep, StepContext
from ..steps.hooks import hook_scripts_for
from ..ui.console import ConsoleLogger
from ..vcs.config_state import ConfigStateCapture
from ..vcs.git import GitClient, ConfigScope, HOOKS_PATH_KEY, hooks_disabled_path
from .command import CommandRunner, ToolEnvironment
from .state import StateMachine, SetupState, StateEvent


class SetupPipeline:
    """
    Applies reversible steps with a snapshot taken first.

    Nothing raised inside escapes ``run``; the SetupResult carries the
    outcome.
    """

    def __init__(
        self,
        config: Config,
        logger: Optional[ConsoleLogger] = None,
        runner: Optional[CommandRunner] = None,
        git: Optional[GitClient] = None,
        store: Optional[SnapshotStore] = None,
        handoff: Optional[HandoffStore] = None,
        steps: Optional[List[ReversibleStep]] = None,
        scanner: Optional[EnvironmentScanner] = None,
        environ: Optional[Mapping[str, str]] = None,
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
        self.steps = default_steps() if steps is None else steps
        self.scanner = scanner or EnvironmentScanner(
            self.working_directory,
            git=self.git,
            hooks_directory=config.hooks.directory,
            environ=os.environ if environ is None else environ,
        )
        self.config_capture = ConfigStateCapture(self.git)
        self.machine = StateMachine()
        self.snapshot: Optional[Snapshot] = None

    def _log_state(self, event: StateEvent):
        self.logger.debug(f"Setup state: {event.from_state.name} → {event.to_state.name}")

    def _context(self) -> StepContext:
        return StepContext(
            working_directory=self.working_directory,
            config=self.config,
            git=self.git,
            runner=self.runner,
            logger=self.logger,
            tool_env=ToolEnvironment.quiet_installs(),
            config_capture=self.config_capture,
        )

    # =========================================================================
    # Run
    # =========================================================================

    def run(self) -> SetupResult:
        """Run every phase and return the outcome."""
        result = SetupResult()
        ctx = self._context()
        self.machine = StateMachine()
        self.machine.on_enter(SetupState.ROLLING_BACK, self._log_state)
        self.machine.on_enter(SetupState.FAILED, self._log_state)
        applied: List[Tuple[ReversibleStep, StepRecord]] = []

        with self.logger.group("Setting up agent environment"):
            try:
                self._run(ctx, result, applied)
            except Exception as e:
                self.logger.error("Setup failed unexpectedly", e)
                result.errors.append(f"Unexpected error: {e}")
                result.success = False
                result.environment_ready = False
                if ctx.snapshot is not None and self.machine.can_transition(SetupState.ROLLING_BACK):
                    self._rollback(ctx, result, applied)
                elif self.machine.can_transition(SetupState.FAILED):
                    self.machine.transition(SetupState.FAILED)

        result.warnings.extend(ctx.warnings)
        result.final_state = self.machine.state.value
        self.logger.debug(f"Setup states:\n{self.machine.format_history()}")
        if result.success:
            self.logger.info("Agent environment setup completed successfully")
        else:
            self.logger.error("Setup failed")
        return result

    def _run(self, ctx: StepContext, result: SetupResult, applied: List[Tuple[ReversibleStep, StepRecord]]):
        if not self._validate(result):
            self.machine.transition(SetupState.FAILED)
            return

        self.machine.transition(SetupState.CAPTURING)
        if not self._capture(ctx, result):
            self.machine.transition(SetupState.FAILED)
            return

        self.machine.transition(SetupState.MUTATING)
        for step in self.steps:
            if not step.enabled(ctx):
                self.logger.debug(f"Skipping step '{step.name}'")
                continue
            record = StepRecord(name=step.name)
            result.steps.append(record)
            try:
                with self.logger.group(step.title or step.name):
                    step.apply(ctx)
            except Exception as e:
                failure = MutationError(step.name, e)
                record.error = str(e)
                self.logger.error(str(failure))
                result.errors.append(str(failure))
                result.error_type = ErrorType.MUTATION.value
                self._rollback(ctx, result, applied)
                return
            record.applied = True
            applied.append((step, record))

        self.machine.transition(SetupState.VERIFYING)
        self._verify(ctx, result)

        self.machine.transition(SetupState.SUCCEEDED)
        result.success = True
        result.environment_ready = True

    # =========================================================================
    # Phases
    # =========================================================================

    def _validate(self, result: SetupResult) -> bool:
        with self.logger.group("Validating environment"):
            problems = self.config.validate()
            validation = self.scanner.validate()
            problems.extend(validation.errors)
            problems.extend(self._pending_cleanup())
            result.warnings.extend(validation.warnings)
            for warning in validation.warnings:
                self.logger.warn(warning)
            if problems:
                for problem in problems:
                    self.logger.error(problem)
                result.errors.extend(problems)
                result.error_type = ErrorType.PRECONDITION.value
                return False

            info = self.scanner.detect()
            self.logger.debug(f"Environment: {info.to_dict()}")
            self.logger.info("Environment validation passed")
            return True

    def _pending_cleanup(self) -> List[str]:
        # Only one outstanding setup per working directory
        try:
            record = self.handoff.read()
        except HandoffError as e:
            return [f"Existing cleanup record is unreadable ({e}); run 'agentprep emergency' first"]
        if record.cleanup_required:
            return [
                f"A previous setup (backup at {record.backup_location or 'unknown'}) "
                "has not been cleaned up; run 'agentprep cleanup' first"
            ]
        return []

    def _capture(self, ctx: StepContext, result: SetupResult) -> bool:
        with self.logger.group("Creating configuration backup"):
            try:
                state = self.config_capture.capture()
            except CommandError as e:
                self.logger.error("Failed to read git configuration", e)
                result.errors.append(f"Capture failed: {e}")
                result.error_type = ErrorType.CAPTURE.value
                return False

            hooks = self.config.hooks
            items = watched_items(self.working_directory, hooks.directory, hooks.backup_directory)
            try:
                snapshot = self.store.capture(items, config_state=state)
            except CaptureError as e:
                if e.partial is not None:
                    self.store.discard(e.partial)
                self.logger.error("Failed to create backup", e)
                result.errors.append(f"Capture failed: {e}")
                result.error_type = ErrorType.CAPTURE.value
                return False

            try:
                self.handoff.write(HandoffRecord.for_snapshot(snapshot))
            except HandoffError as e:
                self.store.discard(snapshot)
                self.logger.error("Failed to persist cleanup record", e)
                result.errors.append(str(e))
                result.error_type = ErrorType.HANDOFF.value
                return False

            self.snapshot = snapshot
            ctx.snapshot = snapshot
            ctx.config_state = state
            result.snapshot = snapshot.identity()
            self.logger.info(f"Backup created at {snapshot.location}")
            self.logger.debug(f"Cleanup record written to {self.handoff.description}")
            return True

    def _verify(self, ctx: StepContext, result: SetupResult):
        with self.logger.group("Performing final validation"):
            if self.config.hooks.disable:
                try:
                    redirected = self.git.get_config(HOOKS_PATH_KEY, ConfigScope.LOCAL) == hooks_disabled_path()
                except CommandError:
                    redirected = False
                scripts_disabled = hook_scripts_for(ctx).is_disabled()
                if not redirected:
                    ctx.warn("Hook disabling verification failed: core.hooksPath is not redirected")
                if not scripts_disabled:
                    ctx.warn("Hook disabling verification failed: some hook scripts are still active")
                result.hooks_disabled = redirected and scripts_disabled

            if self.config.verify.access_check and not self.git.verify_push_access():
                ctx.warn("Git access verification failed - may indicate authentication issues")

    def _rollback(self, ctx: StepContext, result: SetupResult, applied: List[Tuple[ReversibleStep, StepRecord]]):
        """Revert completed steps newest first, then restore snapshot and config."""
        self.machine.transition(SetupState.ROLLING_BACK)
        result.rolled_back = True
        result.success = False
        result.environment_ready = False
        self.logger.warn("Attempting automatic rollback due to setup failure")

        with self.logger.group("Rolling back setup changes"):
            for step, record in reversed(applied):
                try:
                    step.revert(ctx)
                    record.reverted = True
                except Exception as e:
                    message = f"Revert of '{step.name}' failed: {e}"
                    self.logger.error(message)
                    result.rollback_errors.append(message)

            if ctx.snapshot is not None:
                try:
                    self.store.restore(ctx.snapshot)
                except RestorationError as e:
                    result.rollback_errors.extend(f"Restore {path}: {msg}" for path, msg in e.failures)
                except AgentPrepError as e:
                    result.rollback_errors.append(str(e))

            if ctx.config_state is not None:
                try:
                    self.config_capture.restore(ctx.config_state)
                except RestorationError as e:
                    result.rollback_errors.extend(f"Restore {key}: {msg}" for key, msg in e.failures)

            if result.rollback_errors:
                self.logger.error("Automatic rollback finished with errors; cleanup is still required")
            else:
                try:
                    self.handoff.clear()
                except HandoffError as e:
                    result.rollback_errors.append(str(e))
                self.logger.info("Automatic rollback completed")

        self.machine.transition(SetupState.FAILED)
