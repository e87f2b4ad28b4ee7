"""
Dependency step - install project dependencies with lifecycle scripts off.

Runs last so lint tools are already disabled when the installer runs.
Installed dependencies are not part of the restorable state, so the
inverse does nothing.
"""

from typing import List

from ..discovery.environment import EnvironmentScanner, ProjectType, PackageManagerType
from ..protocol.errors import CommandError
from .base import ReversibleStep, StepContext


INSTALL_TIMEOUT = 600  # seconds


def install_args(manager: PackageManagerType, skip_scripts: bool = True) -> List[str]:
    args = [manager.value, "install"]
    if skip_scripts:
        args.append("--ignore-scripts")
    return args


class DependencyInstallStep(ReversibleStep):
    """npm/yarn/pnpm install and flutter pub get."""

    name = "dependencies"
    title = "Installing project dependencies"

    def enabled(self, ctx: StepContext) -> bool:
        return ctx.config.dependencies.install

    def apply(self, ctx: StepContext):
        scanner = EnvironmentScanner(ctx.working_directory, git=ctx.git)
        project_type = scanner.detect_project_type()
        if project_type == ProjectType.UNKNOWN:
            ctx.logger.info("No Node.js or Flutter project detected")
            return

        if project_type in (ProjectType.NODE, ProjectType.MIXED):
            manager = scanner.detect_package_manager()
            ctx.logger.info(f"Installing dependencies with {manager.value}")
            ctx.runner.run(
                install_args(manager, ctx.config.dependencies.skip_scripts),
                cwd=ctx.working_directory,
                env=ctx.tool_env.as_overlay(),
                timeout=INSTALL_TIMEOUT,
            )
            ctx.logger.info(f"Dependencies installed successfully with {manager.value}")

        if project_type in (ProjectType.FLUTTER, ProjectType.MIXED):
            self._flutter(ctx)

    def _flutter(self, ctx: StepContext):
        pubspec = ctx.working_directory / "pubspec.yaml"
        if not pubspec.is_file():
            ctx.logger.debug("No pubspec.yaml; skipping flutter pub get")
            return
        ctx.runner.run(
            ["flutter", "pub", "get"],
            cwd=ctx.working_directory,
            env=ctx.tool_env.as_overlay(),
            timeout=INSTALL_TIMEOUT,
        )
        if "build_runner:" not in pubspec.read_text(errors="replace"):
            return
        ctx.logger.info("Running build_runner code generation")
        try:
            ctx.runner.run(
                ["dart", "run", "build_runner", "build", "--delete-conflicting-outputs"],
                cwd=ctx.working_directory,
                env=ctx.tool_env.as_overlay(),
                timeout=INSTALL_TIMEOUT,
            )
        except CommandError as e:
            ctx.warn(f"Code generation failed (continuing anyway): {e}")

    def revert(self, ctx: StepContext):
        pass
