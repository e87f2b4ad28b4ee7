"""
CLI - Command-line interface for agentprep.

Exit status: 0 when the result reports success, 1 otherwise, 130 on Ctrl-C.
"""

import argparse
import sys
from typing import List, Optional

from rich.console import Console

from . import __version__
from .config import Config
from .handoff.store import GitHubActionsHandoffStore, HandoffStore, create_store, write_outputs
from .protocol.errors import CommandError, HandoffError
from .protocol.result import CleanupResult, SetupResult
from .runner.cleanup import CleanupPipeline, EmergencyCleanup, run_with_fallback
from .runner.setup import SetupPipeline
from .steps.hooks import HookScripts
from .ui.console import ConsoleLogger
from .ui.display import ResultDisplay
from .vcs.config_state import ConfigStateCapture, setting_id
from .vcs.git import GitClient


COMMANDS = ["setup", "cleanup", "auto", "emergency", "status"]


def parse_args(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="agentprep",
        description="Temporarily relax git hooks and lint tooling for an automated agent, then restore them",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Before the agent runs
    agentprep setup

    # Afterwards, possibly from a different process
    agentprep cleanup

    # GitHub Actions main/post step: setup first, cleanup in the post step
    agentprep auto

    # Inspect what is currently disabled
    agentprep -C path/to/repo status
        """,
    )
    parser.add_argument("command", choices=COMMANDS, help="Operation to run")
    parser.add_argument("--config", metavar="PATH", help="Config file (TOML)")
    parser.add_argument("-C", dest="directory", metavar="DIR", help="Working directory")
    parser.add_argument("--debug", action="store_true", default=None, help="Verbose output")
    parser.add_argument("--quiet", action="store_true", default=None, help="Only warnings and errors")
    parser.add_argument("--json", action="store_true", default=None, help="Print the result as JSON")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


# =========================================================================
# Commands
# =========================================================================

def run_setup(config: Config, logger: ConsoleLogger, handoff: HandoffStore) -> SetupResult:
    pipeline = SetupPipeline(config, logger=logger, handoff=handoff)
    result = pipeline.run()
    snapshot = pipeline.snapshot if result.success else None
    write_outputs({
        "setup-successful": str(result.success).lower(),
        "environment-ready": str(result.environment_ready).lower(),
        "backup-location": str(snapshot.location) if snapshot else "",
        "original-configs": snapshot.to_json() if snapshot else "",
        "hooks-disabled": str(result.hooks_disabled).lower(),
    })
    return result


def run_cleanup(config: Config, logger: ConsoleLogger, handoff: HandoffStore) -> CleanupResult:
    cleanup = CleanupPipeline(config, logger=logger, handoff=handoff)
    emergency = EmergencyCleanup(config, logger=logger, git=cleanup.git, store=cleanup.store, handoff=handoff)
    return run_with_fallback(cleanup, emergency)


def run_emergency(config: Config, logger: ConsoleLogger, handoff: HandoffStore) -> CleanupResult:
    return EmergencyCleanup(config, logger=logger, handoff=handoff).run()


def show_status(config: Config, handoff: HandoffStore, display: ResultDisplay) -> bool:
    working_directory = config.workspace.path
    try:
        record = handoff.read()
        handoff_values = record.to_state()
        readable = True
    except HandoffError as e:
        handoff_values = {"error": str(e)}
        readable = False

    hooks = config.hooks
    hook_status = HookScripts(working_directory, hooks.directory, hooks.backup_directory).hook_status()

    git = GitClient(working_directory, timeout=config.verify.timeout)
    tracked = {}
    try:
        state = ConfigStateCapture(git).capture()
        for scope, key, value in state.settings():
            if value and config.auth.token:
                value = value.replace(config.auth.token, "***")
            tracked[setting_id(scope, key)] = value
    except CommandError as e:
        tracked["error"] = str(e)

    try:
        changes = git.status_porcelain().splitlines()
        working_tree = f"{len(changes)} changed paths" if changes else "clean"
    except CommandError as e:
        working_tree = f"unavailable ({e})"

    display.show_status(handoff_values, hook_status, tracked, working_tree)
    return readable


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    args = parse_args(argv)
    console = Console(stderr=bool(args.json))

    try:
        config = Config.load(args.config).override_from_args(args)
    except (OSError, ValueError) as e:
        console.print(f"[bold red]Error:[/] Failed to load config: {e}")
        sys.exit(1)

    logger = ConsoleLogger(
        debug=config.output.debug,
        quiet=config.output.quiet,
        console=console,
    )
    display = ResultDisplay(console)
    logger.set_secret(config.auth.token)
    logger.debug(config.summary())

    try:
        handoff = create_store(config.handoff.backend, config.workspace.path, config.handoff.path)
    except ValueError as e:
        logger.error(str(e))
        sys.exit(1)

    try:
        command = args.command
        if command == "auto":
            if isinstance(handoff, GitHubActionsHandoffStore) and handoff.is_post():
                command = "cleanup"
            else:
                if isinstance(handoff, GitHubActionsHandoffStore):
                    handoff.mark_main_ran()
                command = "setup"
            logger.debug(f"auto resolved to {command}")

        if command == "status":
            ok = show_status(config, handoff, display)
            sys.exit(0 if ok else 1)

        if command == "setup":
            result = run_setup(config, logger, handoff)
        elif command == "cleanup":
            result = run_cleanup(config, logger, handoff)
        else:
            result = run_emergency(config, logger, handoff)

        if config.output.json:
            print(result.to_json())
        elif isinstance(result, SetupResult):
            display.show_setup(result)
        else:
            display.show_cleanup(result)
        sys.exit(0 if result.success else 1)

    except KeyboardInterrupt:
        console.print("\nInterrupted by user")
        sys.exit(130)

    except HandoffError as e:
        logger.error("Could not record run state", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
