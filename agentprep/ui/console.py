"""
ConsoleLogger - Rich-based leveled logger with grouped sections.

Every component logs through one of these. It is a pure side-effect
sink: nothing it does may raise into the pipelines.

Inside GitHub Actions, warnings, errors and groups are mirrored as
workflow commands so the job log folds and annotates them.
"""

import os
import traceback
from contextlib import contextmanager
from typing import Iterator, List, Optional, Set

from rich.console import Console
from rich.markup import escape


MASK = "***"


class ConsoleLogger:
    """
    Leveled console logger.

    Usage:
        logger = ConsoleLogger(debug=True)
        with logger.group("Disabling git hooks"):
            logger.info("Hooks disabled")
    """

    def __init__(
        self,
        debug: bool = False,
        quiet: bool = False,
        console: Optional[Console] = None,
        github_actions: Optional[bool] = None,
    ):
        self.debug_enabled = debug
        self.quiet = quiet
        self.console = console or Console()
        if github_actions is None:
            github_actions = os.environ.get("GITHUB_ACTIONS") == "true"
        self.github_actions = github_actions
        self._secrets: Set[str] = set()
        self._groups: List[str] = []

    # =========================================================================
    # Secrets
    # =========================================================================

    def set_secret(self, secret: Optional[str]):
        """Mask ``secret`` in every subsequent message."""
        if not secret:
            return
        self._secrets.add(secret)
        if self.github_actions:
            self._raw(f"::add-mask::{secret}")

    def _mask(self, message: str) -> str:
        for secret in self._secrets:
            message = message.replace(secret, MASK)
        return message

    # =========================================================================
    # Leveled calls
    # =========================================================================

    def debug(self, message: str):
        if not self.debug_enabled or self.quiet:
            return
        self._emit(f"[dim]{self._indent()}{escape(self._mask(message))}[/]")

    def info(self, message: str):
        if self.quiet:
            return
        self._emit(f"{self._indent()}{escape(self._mask(message))}")

    def warn(self, message: str):
        text = self._mask(message)
        if self.github_actions:
            self._raw(f"::warning::{text}")
        else:
            self._emit(f"{self._indent()}[yellow]Warning:[/] {escape(text)}")

    def error(self, message: str, exception: Optional[BaseException] = None):
        text = self._mask(message)
        if exception is not None:
            text = f"{text}: {self._mask(str(exception))}"
        if self.github_actions:
            self._raw(f"::error::{text}")
        else:
            self._emit(f"{self._indent()}[bold red]Error:[/] {escape(text)}")
        if exception is not None and self.debug_enabled:
            trace = "".join(traceback.format_exception(
                type(exception), exception, exception.__traceback__
            ))
            self._emit(f"[dim]{escape(self._mask(trace.rstrip()))}[/]")

    # =========================================================================
    # Groups
    # =========================================================================

    def start_group(self, title: str):
        if self.github_actions:
            self._raw(f"::group::{self._mask(title)}")
        elif not self.quiet:
            self._safe(lambda: self.console.rule(
                f"[bold blue]{escape(self._mask(title))}[/]", align="left"
            ))
        self._groups.append(title)

    def end_group(self):
        if self._groups:
            self._groups.pop()
        if self.github_actions:
            self._raw("::endgroup::")

    @contextmanager
    def group(self, title: str) -> Iterator["ConsoleLogger"]:
        self.start_group(title)
        try:
            yield self
        finally:
            self.end_group()

    # =========================================================================
    # Output
    # =========================================================================

    def _indent(self) -> str:
        # Workflow-command groups are folded by the runner, no need to indent
        if self.github_actions:
            return ""
        return "  " * max(len(self._groups) - 1, 0)

    def _emit(self, markup: str):
        self._safe(lambda: self.console.print(markup, highlight=False))

    def _raw(self, line: str):
        self._safe(lambda: self.console.print(
            line, markup=False, highlight=False, soft_wrap=True
        ))

    @staticmethod
    def _safe(action):
        try:
            action()
        except Exception:
            # Logging must never take a pipeline down
            pass
