"""
EnvironmentScanner - Validates preconditions and detects the project setup.

Validation errors stop setup before anything is touched; warnings are
passed through to the setup result.
"""

import json
import os
from dataclasses import dataclass, field, asdict
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Any

from ..protocol.errors import CommandError
from ..vcs.git import GitClient
from .runtime import RuntimeScanner


class ProjectType(str, Enum):
    FLUTTER = "flutter"
    NODE = "node"
    MIXED = "mixed"
    UNKNOWN = "unknown"


class PackageManagerType(str, Enum):
    NPM = "npm"
    YARN = "yarn"
    PNPM = "pnpm"


# Checked in order, first hit wins
LOCK_FILES = [
    ("pnpm-lock.yaml", PackageManagerType.PNPM),
    ("yarn.lock", PackageManagerType.YARN),
    ("package-lock.json", PackageManagerType.NPM),
]

FLUTTER_INDICATORS = ["pubspec.yaml", "lib/main.dart"]

COMMITLINT_PATTERNS = [
    "commitlint.config.js",
    "commitlint.config.ts",
    "commitlint.config.json",
    ".commitlintrc.js",
    ".commitlintrc.ts",
    ".commitlintrc.json",
    ".commitlintrc",
]


@dataclass
class ValidationResult:
    """Outcome of precondition checks."""
    is_valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def fail(self, message: str):
        self.errors.append(message)
        self.is_valid = False


@dataclass
class EnvironmentInfo:
    """What the scanner found in the working directory."""
    is_agent: bool
    has_hooks: bool
    has_commitlint: bool
    has_lint_staged: bool
    package_manager: PackageManagerType
    project_type: ProjectType
    working_directory: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class EnvironmentScanner:
    """
    Checks that setup can run and describes the project.
    """

    def __init__(
        self,
        working_directory: Path,
        git: Optional[GitClient] = None,
        runtime_scanner: Optional[RuntimeScanner] = None,
        hooks_directory: str = ".husky",
        environ: Optional[Dict[str, str]] = None,
    ):
        self.working_directory = Path(working_directory)
        self.git = git or GitClient(self.working_directory)
        self.runtime_scanner = runtime_scanner or RuntimeScanner(self.git.runner)
        self.hooks_directory = hooks_directory
        self.environ = os.environ if environ is None else environ

    # =========================================================================
    # Validation
    # =========================================================================

    def validate(self) -> ValidationResult:
        """Run every precondition check; nothing here raises."""
        result = ValidationResult()

        if not self.working_directory.is_dir() or not os.access(self.working_directory, os.R_OK | os.W_OK):
            result.fail(f"Working directory does not exist or is not accessible: {self.working_directory}")
            # Remaining checks need the directory
            return result

        try:
            self.git.version()
        except CommandError as e:
            result.fail(f"Git is not installed or not accessible: {e}")
            return result

        if not self.git.is_work_tree():
            result.fail(f"Not inside a git work tree: {self.working_directory}")

        if not self.environ.get("GITHUB_TOKEN"):
            result.warnings.append("GitHub token not found in environment")
        if not self.environ.get("GITHUB_REPOSITORY"):
            result.warnings.append("GitHub repository not found in environment")

        if self.detect_project_type() in (ProjectType.NODE, ProjectType.MIXED):
            runtimes = self.runtime_scanner.scan()
            if not runtimes.node.installed:
                result.warnings.append("Node.js is not installed or not accessible")
            if not runtimes.npm.installed:
                result.warnings.append("npm is not installed or not accessible")

        return result

    # =========================================================================
    # Detection
    # =========================================================================

    def detect(self) -> EnvironmentInfo:
        return EnvironmentInfo(
            is_agent=self.is_agent(),
            has_hooks=(self.working_directory / self.hooks_directory).is_dir(),
            has_commitlint=self.has_commitlint(),
            has_lint_staged=self.has_lint_staged(),
            package_manager=self.detect_package_manager(),
            project_type=self.detect_project_type(),
            working_directory=str(self.working_directory),
        )

    def is_agent(self) -> bool:
        actor = self.environ.get("GITHUB_ACTOR", "")
        workflow = self.environ.get("GITHUB_WORKFLOW", "")
        return "copilot" in actor.lower() or "copilot" in workflow.lower()

    def has_commitlint(self) -> bool:
        if any((self.working_directory / name).exists() for name in COMMITLINT_PATTERNS):
            return True
        package = self._package_json()
        return bool(
            package.get("commitlint")
            or "@commitlint/cli" in (package.get("devDependencies") or {})
            or "@commitlint/cli" in (package.get("dependencies") or {})
        )

    def has_lint_staged(self) -> bool:
        package = self._package_json()
        return bool(
            package.get("lint-staged")
            or "lint-staged" in (package.get("devDependencies") or {})
            or "lint-staged" in (package.get("dependencies") or {})
        )

    def detect_package_manager(self) -> PackageManagerType:
        for lock_file, manager in LOCK_FILES:
            if (self.working_directory / lock_file).exists():
                return manager
        return PackageManagerType.NPM

    def detect_project_type(self) -> ProjectType:
        flutter = any((self.working_directory / f).exists() for f in FLUTTER_INDICATORS)
        node = (self.working_directory / "package.json").exists()
        if flutter and node:
            return ProjectType.MIXED
        if flutter:
            return ProjectType.FLUTTER
        if node:
            return ProjectType.NODE
        return ProjectType.UNKNOWN

    def _package_json(self) -> Dict[str, Any]:
        try:
            data = json.loads((self.working_directory / "package.json").read_text())
        except (OSError, ValueError):
            return {}
        return data if isinstance(data, dict) else {}
