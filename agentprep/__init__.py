"""
agentprep - Reversible environment preparation for automated coding agents.

Disables git hooks, lint tooling and install scripts so an agent can
commit and push unimpeded, then restores the repository exactly as it
was, even from a separate process or after a crashed run.

Architecture:
- snapshot/: Backups of watched files plus a manifest
- vcs/: git client and config state capture
- steps/: Reversible mutations (hooks, identity, auth, lint, deps)
- runner/: Command runner, setup pipeline, cleanup and emergency cleanup
- handoff/: Durable record passed from setup to cleanup
- discovery/: Precondition checks and project detection
- protocol/: Error taxonomy and result objects
- ui/: Rich console logging and result display
"""

__version__ = "0.1.0"
