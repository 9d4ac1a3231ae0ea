"""
Shell command adapter — the single place step programs run collaborators.

Package managers, ``curl``, ``git``, ``npm``, ``micro`` and ``nvm`` are all
invoked through ``run_command``. By default output streams straight to
the terminal (installers are long-running and may prompt for a sudo
password); ``capture=True`` collects it instead for the few callers that
parse output.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
import time
from dataclasses import dataclass
from typing import Mapping, Sequence

from devstrap.core.errors import CommandError, StepError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    argv: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    elapsed_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def _fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def command_exists(name: str) -> bool:
    return shutil.which(name) is not None


def require_command(name: str) -> None:
    """Raise StepError unless ``name`` resolves on PATH."""
    if not command_exists(name):
        raise StepError(f"Missing required command: {name}")


def run_command(
    argv: Sequence[str],
    *,
    sudo: bool = False,
    check: bool = True,
    capture: bool = False,
    env_overrides: Mapping[str, str] | None = None,
    cwd: str | None = None,
    input_text: str | None = None,
) -> CommandResult:
    """Run a collaborator command.

    Args:
        argv: Command list.
        sudo: Prefix with ``sudo`` unless already root.
        check: Raise CommandError on non-zero exit.
        capture: Capture stdout/stderr instead of streaming them.
        env_overrides: Extra environment variables.
        cwd: Working directory.
        input_text: Data written to the command's stdin.

    Raises:
        CommandError: Non-zero exit with ``check``.
        StepError: The command could not be started at all.
    """
    cmd = list(argv)
    if sudo and os.geteuid() != 0:
        cmd = ["sudo", *cmd]

    env = os.environ.copy()
    if env_overrides:
        env.update(env_overrides)

    logger.debug("CMD %s (cwd=%s)", _fmt_argv(cmd), cwd)
    start = time.monotonic()
    try:
        p = subprocess.run(
            cmd,
            input=input_text,
            text=True,
            capture_output=capture,
            env=env,
            cwd=cwd,
        )
    except OSError as e:
        raise StepError(f"Cannot run {_fmt_argv(cmd)}: {e}") from e

    elapsed_ms = int((time.monotonic() - start) * 1000)
    result = CommandResult(
        argv=cmd,
        returncode=p.returncode,
        stdout=p.stdout or "",
        stderr=p.stderr or "",
        elapsed_ms=elapsed_ms,
    )

    if result.stderr:
        logger.debug("STDERR %s", result.stderr.strip()[-2000:])

    if check and not result.ok:
        raise CommandError(cmd, result.returncode, result.stderr[-2000:])

    return result
