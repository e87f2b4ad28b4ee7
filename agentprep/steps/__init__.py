"""
Steps module - reversible environment mutations.

Applied by the setup pipeline in DEFAULT_STEPS order and reverted in
reverse order on rollback.
"""

from .base import ReversibleStep, StepContext
from .hooks import (
    HooksPathRedirectStep,
    HookScriptNeutralizeStep,
    HookScripts,
    HOOK_MARKER,
    NOOP_HOOK_CONTENT,
    unset_hooks_path,
)
from .identity import IdentityStep, AuthenticationStep
from .lint import LintToolsStep, PackageJsonScripts, reenable_lint_tools
from .dependencies import DependencyInstallStep


def default_steps():
    """Fresh step instances in application order."""
    return [
        HooksPathRedirectStep(),
        HookScriptNeutralizeStep(),
        IdentityStep(),
        AuthenticationStep(),
        LintToolsStep(),
        DependencyInstallStep(),
    ]


__all__ = [
    "ReversibleStep",
    "StepContext",
    "HooksPathRedirectStep",
    "HookScriptNeutralizeStep",
    "HookScripts",
    "HOOK_MARKER",
    "NOOP_HOOK_CONTENT",
    "unset_hooks_path",
    "IdentityStep",
    "AuthenticationStep",
    "LintToolsStep",
    "PackageJsonScripts",
    "reenable_lint_tools",
    "DependencyInstallStep",
    "default_steps",
]
