"""
Repository fixtures: temporary git repos with husky hooks and a package.json.
"""

import json
import subprocess
from pathlib import Path
from typing import Dict, Optional

from rich.console import Console

from agentprep.config import Config
from agentprep.runner.command import CommandRunner
from agentprep.steps.base import StepContext
from agentprep.ui.console import ConsoleLogger
from agentprep.vcs.config_state import ConfigStateCapture
from agentprep.vcs.git import GitClient


SAMPLE_HOOKS = {
    "pre-commit": "#!/usr/bin/env sh\n. \"$(dirname -- \"$0\")/_/husky.sh\"\n\nnpx lint-staged\n",
    "commit-msg": "#!/usr/bin/env sh\n. \"$(dirname -- \"$0\")/_/husky.sh\"\n\nnpx --no -- commitlint --edit \"$1\"\n",
    "pre-push": "#!/usr/bin/env sh\nnpm test\n",
}

SAMPLE_PACKAGE = {
    "name": "sample-app",
    "version": "1.0.0",
    "scripts": {
        "prepare": "husky install",
        "postinstall": "node scripts/postinstall.js",
        "test": "jest",
    },
    "husky": {"hooks": {"pre-commit": "lint-staged"}},
    "lint-staged": {"*.js": ["eslint --fix"]},
}


def git(cwd: Path, *args: str) -> subprocess.CompletedProcess:
    return subprocess.run(
        ["git", *args], cwd=str(cwd), capture_output=True, text=True, check=True
    )


def git_config(cwd: Path, key: str, scope: str = "local") -> Optional[str]:
    """Value of a config key, or None when git reports it unset."""
    result = subprocess.run(
        ["git", "config", f"--{scope}", "--get", key],
        cwd=str(cwd), capture_output=True, text=True,
    )
    if result.returncode == 1:
        return None
    result.check_returncode()
    return result.stdout.rstrip("\n")


def init_repo(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    git(path, "init", "-q")
    return path


def write_husky(repo: Path, hooks: Optional[Dict[str, str]] = None) -> Path:
    hooks_dir = repo / ".husky"
    (hooks_dir / "_").mkdir(parents=True, exist_ok=True)
    (hooks_dir / "_" / "husky.sh").write_text("#!/usr/bin/env sh\n# husky helper\n")
    (hooks_dir / "_" / ".gitignore").write_text("*\n")
    for name, body in (SAMPLE_HOOKS if hooks is None else hooks).items():
        path = hooks_dir / name
        path.write_text(body)
        path.chmod(0o755)
    return hooks_dir


def write_package_json(repo: Path, data: Optional[dict] = None) -> Path:
    path = repo / "package.json"
    path.write_text(json.dumps(SAMPLE_PACKAGE if data is None else data, indent=4) + "\n")
    return path


def tree_contents(root: Path) -> Dict[str, bytes]:
    """Every file under root (outside .git) mapped to its bytes."""
    contents = {}
    for path in sorted(root.rglob("*")):
        relative = path.relative_to(root)
        if relative.parts[0] == ".git":
            continue
        if path.is_file():
            contents[str(relative)] = path.read_bytes()
    return contents


def quiet_logger() -> ConsoleLogger:
    return ConsoleLogger(quiet=True, console=Console(quiet=True), github_actions=False)


def make_config(repo: Path, handoff_path: Optional[Path] = None) -> Config:
    """Config for tests: no installs, no network checks, file handoff."""
    config = Config()
    config.workspace.directory = str(repo)
    config.dependencies.install = False
    config.verify.access_check = False
    config.handoff.backend = "file"
    config.handoff.path = str(handoff_path or repo.parent / "handoff.json")
    return config


def make_context(
    repo: Path,
    config: Optional[Config] = None,
    runner: Optional[CommandRunner] = None,
) -> StepContext:
    git_client = GitClient(repo, CommandRunner())
    return StepContext(
        working_directory=repo,
        config=config or make_config(repo),
        git=git_client,
        runner=runner or CommandRunner(),
        logger=quiet_logger(),
        config_capture=ConfigStateCapture(git_client),
    )
