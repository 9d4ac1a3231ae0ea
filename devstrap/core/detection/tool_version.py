"""
Detection — tool version checking for the verification pass.

Read-only: runs ``--version`` style commands and reports the first line
of output (or a parsed version). Never raises; a missing or broken tool
is reported as ``None``.
"""

from __future__ import annotations

import re
import shutil
import subprocess
from typing import Callable

from devstrap.core.models.step import ToolVersion

# tool → (command, optional regex; None = first output line verbatim)
VERSION_COMMANDS: dict[str, tuple[list[str], str | None]] = {
    "node":   (["node", "-v"],          None),
    "npm":    (["npm", "-v"],           None),
    "tmux":   (["tmux", "-V"],          None),
    "micro":  (["micro", "-version"],   None),
    "zsh":    (["zsh", "--version"],    None),
    "git":    (["git", "--version"],    r"git version\s+(\d+\.\d+\.\d+)"),
    "rg":     (["rg", "--version"],     r"ripgrep\s+(\d+\.\d+\.\d+)"),
    "fzf":    (["fzf", "--version"],    r"(\d+\.\d+(?:\.\d+)?)"),
    "jq":     (["jq", "--version"],     r"jq-(\d+\.\d+(?:\.\d+)?)"),
    "zoxide": (["zoxide", "--version"], r"zoxide\s+v?(\d+\.\d+\.\d+)"),
    "delta":  (["delta", "--version"],  r"delta\s+(\d+\.\d+\.\d+)"),
    "tsc":    (["tsc", "--version"],    r"Version\s+(\d+\.\d+\.\d+)"),
}


def get_tool_version(
    tool: str,
    which: Callable[[str], str | None] = shutil.which,
) -> str | None:
    """Get the installed version of a tool.

    Tools without a ``VERSION_COMMANDS`` entry are probed with
    ``<tool> --version``.

    Returns:
        Version text, or ``None`` if the tool is not installed or the
        command produced nothing usable.
    """
    cmd, pattern = VERSION_COMMANDS.get(tool, ([tool, "--version"], None))
    if not which(cmd[0]):
        return None

    try:
        result = subprocess.run(
            cmd, capture_output=True, text=True, timeout=10,
        )
    except (subprocess.TimeoutExpired, OSError):
        return None

    # Some tools write version to stderr
    output = (result.stdout or "") + (result.stderr or "")
    if pattern:
        match = re.search(pattern, output)
        return match.group(1) if match else None

    first_line = output.strip().splitlines()[0] if output.strip() else ""
    return first_line or None


def verify_tools(
    tools: list[str],
    which: Callable[[str], str | None] = shutil.which,
) -> list[ToolVersion]:
    """Report the version (or absence) of each tool, in order."""
    return [ToolVersion(name=t, version=get_tool_version(t, which)) for t in tools]
