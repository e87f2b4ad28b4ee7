"""
Lint-tool step - switch off npm lifecycle scripts and husky/lint-staged config.

Disabled entries are kept in package.json under ``<name>.disabled`` so
the inverse can move them back without a backup.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .base import ReversibleStep, StepContext


DISABLED_SUFFIX = ".disabled"
DISABLED_SCRIPT = 'echo "Script disabled by agentprep"'

SCRIPTS_TO_DISABLE = ["prepare", "postinstall", "precommit", "prepush"]
SECTIONS_TO_DISABLE = ["husky", "lint-staged"]


class PackageJsonScripts:
    """Edits the lifecycle scripts and tool sections of a package.json."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def read(self) -> Dict[str, Any]:
        data = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not contain a JSON object")
        return data

    def write(self, data: Dict[str, Any]):
        self.path.write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")

    def disable(self) -> List[str]:
        """
        Move lifecycle scripts and tool sections aside.

        Returns:
            Names that were disabled by this call
        """
        if not self.exists():
            return []
        data = self.read()
        changed = []

        scripts = data.get("scripts")
        if isinstance(scripts, dict):
            for name in SCRIPTS_TO_DISABLE:
                current = scripts.get(name)
                if not current or current == DISABLED_SCRIPT:
                    continue
                scripts[name + DISABLED_SUFFIX] = current
                scripts[name] = DISABLED_SCRIPT
                changed.append(name)

        for section in SECTIONS_TO_DISABLE:
            if section in data:
                data[section + DISABLED_SUFFIX] = data.pop(section)
                changed.append(section)

        if changed:
            self.write(data)
        return changed

    def enable(self) -> List[str]:
        """
        Move back what ``disable`` moved aside.

        A script comes back only if its live value is still the disabled
        placeholder, and a section only if there is no live section of the
        same name. Other ``*.disabled`` keys belong to the project.
        """
        if not self.exists():
            return []
        data = self.read()
        scripts, sections = self._moved_aside(data)

        for name in scripts:
            data["scripts"][name] = data["scripts"].pop(name + DISABLED_SUFFIX)
        for section in sections:
            data[section] = data.pop(section + DISABLED_SUFFIX)

        changed = scripts + sections
        if changed:
            self.write(data)
        return changed

    def disabled_entries(self) -> List[str]:
        """Names currently moved aside; empty if the file is unreadable."""
        try:
            data = self.read() if self.exists() else {}
        except (OSError, ValueError):
            return []
        scripts, sections = self._moved_aside(data)
        return scripts + sections

    @staticmethod
    def _moved_aside(data: Dict[str, Any]) -> Tuple[List[str], List[str]]:
        scripts = data.get("scripts")
        names = []
        if isinstance(scripts, dict):
            names = [
                name for name in SCRIPTS_TO_DISABLE
                if name + DISABLED_SUFFIX in scripts and scripts.get(name) == DISABLED_SCRIPT
            ]
        sections = [
            section for section in SECTIONS_TO_DISABLE
            if section + DISABLED_SUFFIX in data and section not in data
        ]
        return names, sections


def package_json_for(ctx: StepContext) -> PackageJsonScripts:
    return PackageJsonScripts(ctx.working_directory / "package.json")


class LintToolsStep(ReversibleStep):
    """Disable husky, lint-staged and npm lifecycle scripts in package.json."""

    name = "lint-tools"
    title = "Disabling linting tools"

    def enabled(self, ctx: StepContext) -> bool:
        return ctx.config.lint.disable

    def apply(self, ctx: StepContext):
        package = package_json_for(ctx)
        if not package.exists():
            ctx.logger.debug("No package.json found")
            return
        try:
            disabled = package.disable()
        except ValueError as e:
            ctx.warn(f"package.json could not be parsed, lint tools left enabled: {e}")
            return
        ctx.logger.info(f"Linting tools disabled ({', '.join(disabled) or 'nothing to change'})")

    def revert(self, ctx: StepContext):
        try:
            enabled = package_json_for(ctx).enable()
        except ValueError as e:
            ctx.warn(f"package.json could not be parsed, lint tools not re-enabled: {e}")
            return
        if enabled:
            ctx.logger.info(f"Linting tools re-enabled ({', '.join(enabled)})")


def reenable_lint_tools(working_directory: Path) -> Optional[List[str]]:
    """Inverse of LintToolsStep without a context; None when there is no package.json."""
    package = PackageJsonScripts(Path(working_directory) / "package.json")
    if not package.exists():
        return None
    return package.enable()
