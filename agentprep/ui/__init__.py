"""
UI module - Rich console output.

Provides:
- Leveled logger with grouped sections and secret masking
- Result and status rendering
"""

from .console import ConsoleLogger
from .display import ResultDisplay

__all__ = [
    "ConsoleLogger",
    "ResultDisplay",
]
