"""
Discovery module - Gathers context about the working directory.

Components:
- EnvironmentScanner: Precondition checks and project detection
- RuntimeScanner: Which runtimes (node, npm, flutter) are available
"""

from .environment import (
    EnvironmentScanner,
    EnvironmentInfo,
    ValidationResult,
    ProjectType,
    PackageManagerType,
)
from .runtime import RuntimeScanner, RuntimeInfo

__all__ = [
    "EnvironmentScanner",
    "EnvironmentInfo",
    "ValidationResult",
    "ProjectType",
    "PackageManagerType",
    "RuntimeScanner",
    "RuntimeInfo",
]
