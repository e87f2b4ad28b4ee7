"""
Config state capture - records and restores the git settings agentprep touches.

A ConfigState holds explicit fields for the well-known keys plus an open
bag of extra ``scope:key`` settings. ``None`` means the key was unset:
restoring it unsets the key rather than writing an empty string.
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, Iterable, List, Optional, Any, Tuple

from ..protocol.errors import CommandError, RestorationError
from .git import ConfigScope, GitClient


# Named field -> (scope, git key). Order is restore order.
NAMED_FIELDS: Dict[str, Tuple[ConfigScope, str]] = {
    "user_name": (ConfigScope.GLOBAL, "user.name"),
    "user_email": (ConfigScope.GLOBAL, "user.email"),
    "hooks_path": (ConfigScope.LOCAL, "core.hooksPath"),
    "remote_url": (ConfigScope.LOCAL, "remote.origin.url"),
}

DEFAULT_EXTRA_KEYS = [
    "global:core.hooksPath",
    "global:credential.helper",
    "global:core.autocrlf",
    "global:core.safecrlf",
    "global:pull.rebase",
]


def setting_id(scope: ConfigScope, key: str) -> str:
    """Identifier used for extras, e.g. ``global:core.hooksPath``."""
    return f"{scope.value}:{key}"


def parse_setting_id(setting: str) -> Tuple[ConfigScope, str]:
    """Split ``scope:key``; a bare key is local."""
    scope, sep, key = setting.partition(":")
    if not sep:
        return ConfigScope.LOCAL, setting
    try:
        return ConfigScope(scope), key
    except ValueError:
        raise ValueError(f"Unknown config scope in '{setting}'")


@dataclass
class ConfigState:
    """Git settings as they were before setup."""
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    hooks_path: Optional[str] = None
    remote_url: Optional[str] = None
    extra: Dict[str, Optional[str]] = field(default_factory=dict)

    def settings(self) -> List[Tuple[ConfigScope, str, Optional[str]]]:
        """
        All recorded settings in restore order.

        Named fields come first; an extra naming the same scope and key as
        a named field is dropped so the named field wins.
        """
        ordered = []
        named_ids = set()
        for name, (scope, key) in NAMED_FIELDS.items():
            ordered.append((scope, key, getattr(self, name)))
            named_ids.add(setting_id(scope, key))
        for setting, value in self.extra.items():
            scope, key = parse_setting_id(setting)
            if setting_id(scope, key) in named_ids:
                continue
            ordered.append((scope, key, value))
        return ordered

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ConfigState':
        if not isinstance(data, dict):
            raise TypeError("config state must be an object")
        extra = data.get("extra") or {}
        if not isinstance(extra, dict):
            raise TypeError("config state 'extra' must be an object")
        values = {}
        for name in NAMED_FIELDS:
            value = data.get(name)
            if value is not None and not isinstance(value, str):
                raise TypeError(f"config state '{name}' must be a string or null")
            values[name] = value
        return cls(extra=dict(extra), **values)


class ConfigStateCapture:
    """Reads and writes ConfigState through a GitClient."""

    def __init__(self, git: GitClient, extra_keys: Optional[Iterable[str]] = None):
        self.git = git
        self.extra_keys = list(DEFAULT_EXTRA_KEYS if extra_keys is None else extra_keys)

    def capture(self, extra_keys: Optional[Iterable[str]] = None) -> ConfigState:
        """
        Read every named field and extra key.

        Raises:
            CommandError: git could not be queried
        """
        state = ConfigState()
        for name, (scope, key) in NAMED_FIELDS.items():
            setattr(state, name, self.git.get_config(key, scope))

        keys = self.extra_keys if extra_keys is None else list(extra_keys)
        for setting in keys:
            scope, key = parse_setting_id(setting)
            state.extra[setting_id(scope, key)] = self.git.get_config(key, scope)
        return state

    def restore(self, state: ConfigState) -> int:
        """
        Put every recorded setting back.

        Best-effort: every setting is attempted before failures are raised.

        Returns:
            Number of settings restored

        Raises:
            RestorationError: one or more settings could not be written
        """
        return self._apply(state.settings())

    def restore_keys(self, state: ConfigState, keys: Iterable[str]) -> int:
        """Restore only the given ``scope:key`` settings."""
        wanted = {setting_id(*parse_setting_id(k)) for k in keys}
        subset = [s for s in state.settings() if setting_id(s[0], s[1]) in wanted]
        return self._apply(subset)

    def _apply(self, settings: List[Tuple[ConfigScope, str, Optional[str]]]) -> int:
        failures = []
        restored = 0
        for scope, key, value in settings:
            try:
                if value is None:
                    self.git.unset_config(key, scope)
                else:
                    self.git.set_config(key, value, scope)
                restored += 1
            except CommandError as e:
                failures.append((setting_id(scope, key), str(e)))
        if failures:
            raise RestorationError(failures)
        return restored
