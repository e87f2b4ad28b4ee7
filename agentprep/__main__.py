"""
Entry point for running agentprep as a module.

Usage:
    python -m agentprep setup
"""

from .cli import main

if __name__ == "__main__":
    main()
