"""
Error taxonomy — exceptions shared across the orchestrator and steps.

Step execution failures are NOT exceptions: the runner reports them as
``StepResult`` values and the orchestrator halts on them. These classes
cover everything that aborts before or outside a step.
"""

from __future__ import annotations


class DevstrapError(Exception):
    """Base class for all devstrap errors."""


class UnsupportedEnvironmentError(DevstrapError):
    """Unknown OS, no recognised package manager, or Homebrew missing on macOS."""


class RootUserError(UnsupportedEnvironmentError):
    """Raised when provisioning is attempted as root."""


class ConfigError(DevstrapError):
    """Raised when the devstrap configuration file is invalid."""


class StepError(DevstrapError):
    """Unrecoverable failure inside a step program."""


class CommandError(StepError):
    """A collaborator command exited non-zero."""

    def __init__(self, argv: list[str], returncode: int, stderr: str = ""):
        self.argv = argv
        self.returncode = returncode
        self.stderr = stderr
        detail = f": {stderr.strip()}" if stderr and stderr.strip() else ""
        super().__init__(f"Command failed (exit {returncode}): {' '.join(argv)}{detail}")
