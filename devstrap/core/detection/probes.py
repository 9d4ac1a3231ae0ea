"""
Detection — capability probes.

One read-only check per provisioning step: "is this step's end state
already present?". Probes look at files under the user's home directory,
environment variables and PATH-resolvable commands through a ``HostView``.
They never write, never touch the network and never raise for missing
files: absence is simply ``False``.

A partially installed tool (binary present, config missing, or the
reverse) is "not satisfied", so its step re-runs.
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Mapping

from devstrap.core.services.zshrc import aliases_present

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HostView:
    """What a probe is allowed to look at."""

    home: Path = field(default_factory=lambda: Path.home())
    environ: Mapping[str, str] = field(default_factory=lambda: dict(os.environ))
    which: Callable[[str], str | None] = shutil.which

    def has_cmd(self, name: str) -> bool:
        return self.which(name) is not None

    def any_cmd(self, *names: str) -> bool:
        return any(self.has_cmd(n) for n in names)

    def env_path(self, var: str, default: Path) -> Path:
        value = self.environ.get(var)
        return Path(value).expanduser() if value else default

    def read_text(self, path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            return ""


CapabilityCheck = Callable[[HostView], bool]


def _is_dir(path: Path) -> bool:
    try:
        return path.is_dir()
    except OSError:
        return False


def _is_file(path: Path) -> bool:
    try:
        return path.is_file()
    except OSError:
        return False


def _non_empty(path: Path) -> bool:
    try:
        return path.is_file() and path.stat().st_size > 0
    except OSError:
        return False


# ── Per-step checks ─────────────────────────────────────────────


def zsh_custom_dir(host: HostView) -> Path:
    return host.env_path("ZSH_CUSTOM", host.home / ".oh-my-zsh" / "custom")


def nvm_dir(host: HostView) -> Path:
    return host.env_path("NVM_DIR", host.home / ".nvm")


def zsh_is_configured(host: HostView) -> bool:
    """Oh My Zsh, both plugins, and the alias block all present."""
    plugins = zsh_custom_dir(host) / "plugins"
    return (
        _is_dir(host.home / ".oh-my-zsh")
        and _is_dir(plugins / "zsh-autosuggestions")
        and _is_dir(plugins / "zsh-syntax-highlighting")
        and aliases_present(host.read_text(host.home / ".zshrc"))
    )


def nvm_is_configured(host: HostView) -> bool:
    return (
        _non_empty(nvm_dir(host) / "nvm.sh")
        and host.has_cmd("node")
        and host.has_cmd("npm")
    )


# Each entry is satisfied by any one of its alternatives (Debian renames).
CLI_TOOL_COMMANDS: list[tuple[str, ...]] = [
    ("rg",),
    ("fd", "fdfind"),
    ("fzf",),
    ("jq",),
    ("yq",),
    ("bat", "batcat"),
    ("zoxide",),
    ("delta",),
]


def cli_tools_installed(host: HostView) -> bool:
    return all(host.any_cmd(*alternatives) for alternatives in CLI_TOOL_COMMANDS)


def micro_is_configured(host: HostView) -> bool:
    return (
        host.has_cmd("micro")
        and host.has_cmd("tsc")
        and host.has_cmd("typescript-language-server")
        and _is_dir(host.home / ".config" / "micro" / "plug" / "lsp")
    )


def tmux_is_configured(host: HostView) -> bool:
    return host.has_cmd("tmux") and _is_file(host.home / ".tmux.conf")


PROBES: dict[str, CapabilityCheck] = {
    "zsh": zsh_is_configured,
    "nvm": nvm_is_configured,
    "cli-tools": cli_tools_installed,
    "micro": micro_is_configured,
    "tmux": tmux_is_configured,
}


def probe_step(name: str, host: HostView | None = None) -> bool:
    """Run the probe registered for ``name``.

    Unknown steps have no way to be "already satisfied" and report False.
    """
    check = PROBES.get(name)
    if check is None:
        logger.debug("No capability probe for step %s", name)
        return False
    return check(host or HostView())
