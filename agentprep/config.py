"""
Configuration management for agentprep.

Supports:
- TOML config files
- Environment variables
- Command-line overrides
- Sensible defaults

Priority (highest to lowest):
1. Command-line arguments
2. Environment variables
3. Config file
4. Defaults
"""

import os
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List, Mapping

try:
    import tomllib  # Python 3.11+
except ImportError:
    import tomli as tomllib  # Older Python


HANDOFF_BACKENDS = ("auto", "file", "github")


def config_search_paths() -> List[Path]:
    """Default config file locations (searched in order)."""
    return [
        Path.cwd() / "agentprep.toml",
        Path.cwd() / ".agentprep.toml",
        Path.home() / ".agentprep" / "config.toml",
        Path.home() / ".config" / "agentprep" / "config.toml",
    ]


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class WorkspaceConfig:
    """Where agentprep operates."""
    directory: str = "."

    @property
    def path(self) -> Path:
        return Path(self.directory).expanduser().absolute()


@dataclass
class HooksConfig:
    """Git hook handling."""
    disable: bool = True
    create_noop: bool = False
    directory: str = ".husky"
    backup_directory: str = ".husky.backup"


@dataclass
class IdentityConfig:
    """Git identity the agent commits as."""
    user_name: str = "copilot-swe-agent[bot]"
    user_email: str = "198982749+Copilot@users.noreply.github.com"


@dataclass
class AuthConfig:
    """Push authentication."""
    token: str = ""
    repository: str = ""
    host: str = "github.com"
    required: bool = False

    def remote_url(self) -> str:
        """Token-bearing HTTPS remote for the repository."""
        return f"https://x-access-token:{self.token}@{self.host}/{self.repository}.git"


@dataclass
class LintConfig:
    disable: bool = True


@dataclass
class DependenciesConfig:
    install: bool = True
    skip_scripts: bool = True


@dataclass
class BackupConfig:
    """Snapshot restore and expiry."""
    restore_files: bool = True
    max_age_hours: float = 24


@dataclass
class HandoffConfig:
    """Where setup leaves its record for cleanup."""
    backend: str = "auto"
    path: str = ""


@dataclass
class VerifyConfig:
    access_check: bool = True
    timeout: int = 30


@dataclass
class OutputConfig:
    """Output configuration."""
    debug: bool = False
    quiet: bool = False
    json: bool = False


@dataclass
class Config:
    """Main configuration container."""
    workspace: WorkspaceConfig = field(default_factory=WorkspaceConfig)
    hooks: HooksConfig = field(default_factory=HooksConfig)
    identity: IdentityConfig = field(default_factory=IdentityConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    lint: LintConfig = field(default_factory=LintConfig)
    dependencies: DependenciesConfig = field(default_factory=DependenciesConfig)
    backup: BackupConfig = field(default_factory=BackupConfig)
    handoff: HandoffConfig = field(default_factory=HandoffConfig)
    verify: VerifyConfig = field(default_factory=VerifyConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    # Source tracking
    _config_file: Optional[Path] = None

    @classmethod
    def load(
        cls,
        config_path: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "Config":
        """
        Load configuration from file, then apply environment variables.

        Args:
            config_path: Explicit path to config file. If None, searches default locations.
            environ: Environment to read (default: os.environ)

        Returns:
            Config instance with loaded values
        """
        config = cls()

        if config_path:
            path = Path(config_path)
            if not path.exists():
                raise FileNotFoundError(f"Config file not found: {config_path}")
        else:
            path = cls._find_config_file()

        if path:
            config = cls._load_from_file(path)
            config._config_file = path

        return config.override_from_env(os.environ if environ is None else environ)

    @classmethod
    def _find_config_file(cls) -> Optional[Path]:
        """Find config file in default locations."""
        for path in config_search_paths():
            if path.exists():
                return path
        return None

    @classmethod
    def _load_from_file(cls, path: Path) -> "Config":
        """Load config from TOML file."""
        with open(path, "rb") as f:
            data = tomllib.load(f)

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create Config from dictionary."""
        config = cls()

        # Workspace
        if "workspace" in data:
            ws = data["workspace"]
            config.workspace = WorkspaceConfig(
                directory=ws.get("directory", config.workspace.directory),
            )

        # Hooks
        if "hooks" in data:
            hooks = data["hooks"]
            config.hooks = HooksConfig(
                disable=hooks.get("disable", config.hooks.disable),
                create_noop=hooks.get("create_noop", config.hooks.create_noop),
                directory=hooks.get("directory", config.hooks.directory),
                backup_directory=hooks.get("backup_directory", config.hooks.backup_directory),
            )

        # Identity
        if "identity" in data:
            ident = data["identity"]
            config.identity = IdentityConfig(
                user_name=ident.get("user_name", config.identity.user_name),
                user_email=ident.get("user_email", config.identity.user_email),
            )

        # Auth
        if "auth" in data:
            auth = data["auth"]
            config.auth = AuthConfig(
                token=auth.get("token", config.auth.token),
                repository=auth.get("repository", config.auth.repository),
                host=auth.get("host", config.auth.host),
                required=auth.get("required", config.auth.required),
            )

        if "lint" in data:
            config.lint = LintConfig(disable=data["lint"].get("disable", config.lint.disable))

        if "dependencies" in data:
            deps = data["dependencies"]
            config.dependencies = DependenciesConfig(
                install=deps.get("install", config.dependencies.install),
                skip_scripts=deps.get("skip_scripts", config.dependencies.skip_scripts),
            )

        # Backup
        if "backup" in data:
            backup = data["backup"]
            config.backup = BackupConfig(
                restore_files=backup.get("restore_files", config.backup.restore_files),
                max_age_hours=backup.get("max_age_hours", config.backup.max_age_hours),
            )

        # Handoff
        if "handoff" in data:
            handoff = data["handoff"]
            config.handoff = HandoffConfig(
                backend=handoff.get("backend", config.handoff.backend),
                path=handoff.get("path", config.handoff.path),
            )

        if "verify" in data:
            verify = data["verify"]
            config.verify = VerifyConfig(
                access_check=verify.get("access_check", config.verify.access_check),
                timeout=verify.get("timeout", config.verify.timeout),
            )

        # Output
        if "output" in data:
            out = data["output"]
            config.output = OutputConfig(
                debug=out.get("debug", config.output.debug),
                quiet=out.get("quiet", config.output.quiet),
                json=out.get("json", config.output.json),
            )

        return config

    def override_from_env(self, environ: Mapping[str, str]) -> "Config":
        """Apply environment variables that are set and non-empty."""
        if environ.get("GITHUB_TOKEN"):
            self.auth.token = environ["GITHUB_TOKEN"]
        if environ.get("GITHUB_REPOSITORY"):
            self.auth.repository = environ["GITHUB_REPOSITORY"]
        if environ.get("AGENTPREP_DEBUG"):
            self.output.debug = _as_bool(environ["AGENTPREP_DEBUG"])
        return self

    def override_from_args(self, args) -> "Config":
        """
        Override config values from argparse namespace.

        Args with value None are ignored (keeping config file values).
        """
        if getattr(args, "directory", None):
            self.workspace.directory = args.directory
        if getattr(args, "debug", None):
            self.output.debug = True
        if getattr(args, "quiet", None):
            self.output.quiet = True
        if getattr(args, "json", None):
            self.output.json = True
        return self

    def validate(self) -> list:
        """
        Validate configuration.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if self.handoff.backend not in HANDOFF_BACKENDS:
            errors.append(
                f"Unknown handoff backend '{self.handoff.backend}' "
                f"(expected one of: {', '.join(HANDOFF_BACKENDS)})"
            )
        if self.backup.max_age_hours < 0:
            errors.append("Backup max_age_hours must not be negative")
        if self.auth.required and not self.auth.token:
            errors.append("Authentication is required but no token is set. Set GITHUB_TOKEN")
        if self.verify.timeout < 1:
            errors.append("Verify timeout must be at least 1 second")
        if not self.hooks.directory or self.hooks.directory == self.hooks.backup_directory:
            errors.append("Hooks directory and its backup directory must be distinct")

        return errors

    def summary(self, include_config_path: bool = True) -> str:
        """Generate human-readable config summary."""
        lines = []

        if include_config_path:
            if self._config_file:
                lines.append(f"Config: {self._config_file}")
            else:
                lines.append("Config: (defaults)")

        lines.append(f"Workspace: {self.workspace.path}")
        lines.append(
            f"Hooks: {'disable' if self.hooks.disable else 'leave'} "
            f"{self.hooks.directory} (backup {self.hooks.backup_directory})"
        )
        lines.append(f"Identity: {self.identity.user_name} <{self.identity.user_email}>")
        if self.auth.token:
            lines.append(f"Auth: token set, {self.auth.host}/{self.auth.repository or '?'}")
        else:
            lines.append("Auth: (no token)")
        lines.append(f"Handoff: {self.handoff.backend}")

        return "\n".join(lines)
