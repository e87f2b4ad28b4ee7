"""
VCS module - git command client and config state capture.
"""

from .git import GitClient, ConfigScope, HOOKS_PATH_KEY, hooks_disabled_path
from .config_state import ConfigState, ConfigStateCapture, DEFAULT_EXTRA_KEYS

__all__ = [
    "GitClient",
    "ConfigScope",
    "HOOKS_PATH_KEY",
    "hooks_disabled_path",
    "ConfigState",
    "ConfigStateCapture",
    "DEFAULT_EXTRA_KEYS",
]
