"""
Fake collaborators for the agentprep test suite.

Real git is used everywhere it can be; these stand in for the parts
that would need a network, a package manager, or a broken store.
"""

from .repo import (
    git,
    git_config,
    init_repo,
    make_config,
    make_context,
    quiet_logger,
    tree_contents,
    write_husky,
    write_package_json,
    SAMPLE_HOOKS,
    SAMPLE_PACKAGE,
)
from .steps import RecordingStep, FailingStep, BrokenRevertStep
from .runner import FakeRunner
from .handoff import MemoryHandoffStore, UnwritableHandoffStore, parse_delimited

__all__ = [
    "git",
    "git_config",
    "init_repo",
    "make_config",
    "make_context",
    "quiet_logger",
    "tree_contents",
    "write_husky",
    "write_package_json",
    "SAMPLE_HOOKS",
    "SAMPLE_PACKAGE",
    "RecordingStep",
    "FailingStep",
    "BrokenRevertStep",
    "FakeRunner",
    "MemoryHandoffStore",
    "UnwritableHandoffStore",
    "parse_delimited",
]
