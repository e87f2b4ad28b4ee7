"""
ResultDisplay - Renders setup/cleanup results and status tables.
"""

from typing import Dict, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..protocol.result import SetupResult, CleanupResult


class ResultDisplay:
    """Formats pipeline results for the terminal."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def show_setup(self, result: SetupResult):
        status = "[bold green]READY[/]" if result.success else "[bold red]FAILED[/]"
        table = Table(show_header=False, box=None)
        table.add_column("Key", style="dim")
        table.add_column("Value")

        table.add_row("Status", status)
        table.add_row("Final state", result.final_state or "-")
        table.add_row("Hooks disabled", "yes" if result.hooks_disabled else "no")
        if result.snapshot:
            table.add_row("Snapshot", escape(result.snapshot.id))
            table.add_row("Backup location", escape(result.snapshot.location))
        if result.rolled_back:
            table.add_row("Rolled back", "yes")

        self.console.print(Panel(table, title="Setup", border_style="cyan"))

        if result.steps:
            steps = Table(title="Steps")
            steps.add_column("Step")
            steps.add_column("Applied")
            steps.add_column("Reverted")
            steps.add_column("Error", style="red")
            for step in result.steps:
                steps.add_row(
                    step.name,
                    "✓" if step.applied else "",
                    "✓" if step.reverted else "",
                    escape(step.error or ""),
                )
            self.console.print(steps)

        self._show_messages(result.errors, "Errors", "red")
        self._show_messages(result.rollback_errors, "Rollback errors", "red")
        self._show_messages(result.warnings, "Warnings", "yellow")

    def show_cleanup(self, result: CleanupResult):
        if result.skipped:
            self.console.print("[dim]No cleanup required[/]")
            return

        status = "[bold green]CLEAN[/]" if result.success else "[bold red]FAILED[/]"
        table = Table(show_header=False, box=None)
        table.add_column("Key", style="dim")
        table.add_column("Value")
        table.add_row("Status", status)
        table.add_row("Emergency", "yes" if result.emergency else "no")
        table.add_row("Snapshot used", "yes" if result.snapshot_used else "no")
        table.add_row("Files restored", "yes" if result.restored else "no")

        self.console.print(Panel(table, title="Cleanup", border_style="cyan"))
        self._show_messages(result.errors, "Errors", "red")
        self._show_messages(result.warnings, "Warnings", "yellow")

    def show_status(
        self,
        handoff: Dict[str, str],
        hooks: Dict[str, bool],
        git_config: Dict[str, Optional[str]],
        working_tree: Optional[str] = None,
    ):
        """Show the handoff record, hook state, tracked git keys and working tree."""
        table = Table(title="Handoff record")
        table.add_column("Key")
        table.add_column("Value")
        for key, value in handoff.items():
            shown = value if len(value) <= 60 else value[:57] + "..."
            table.add_row(key, escape(shown) or "[dim](empty)[/]")
        self.console.print(table)

        table = Table(title="Hooks")
        table.add_column("Hook")
        table.add_column("Disabled")
        for hook, disabled in sorted(hooks.items()):
            table.add_row(hook, "[yellow]yes[/]" if disabled else "no")
        if not hooks:
            table.add_row("[dim](none)[/]", "")
        self.console.print(table)

        table = Table(title="Git configuration")
        table.add_column("Key")
        table.add_column("Value")
        for key, value in git_config.items():
            table.add_row(key, "[dim](unset)[/]" if value is None else escape(repr(value)))
        self.console.print(table)
        if working_tree is not None:
            self.console.print(f"Working tree: {escape(working_tree)}")

    def _show_messages(self, messages, title: str, color: str):
        if not messages:
            return
        self.console.print(f"[{color}]{title}:[/]")
        for message in messages:
            self.console.print(f"  [{color}]•[/] {escape(message)}")
