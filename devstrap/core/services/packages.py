"""
Package manager front end — apt, dnf, pacman, brew.

Pure command builders plus thin runners. Every lookup is exhaustive over
``PackageManager``; a manager missing from a table is an explicit
``UnsupportedEnvironmentError``, never a silent fall-through.
"""

from __future__ import annotations

import logging
from typing import Sequence

from devstrap.adapters.shell.command import run_command
from devstrap.core.errors import CommandError, UnsupportedEnvironmentError
from devstrap.core.models.environment import EnvironmentFacts, PackageManager

logger = logging.getLogger(__name__)

_APT, _DNF, _PACMAN, _BREW = (
    PackageManager.APT,
    PackageManager.DNF,
    PackageManager.PACMAN,
    PackageManager.BREW,
)

INSTALL_COMMANDS: dict[PackageManager, list[str]] = {
    _APT:    ["apt-get", "install", "-y"],
    _DNF:    ["dnf", "install", "-y"],
    _PACMAN: ["pacman", "-Sy", "--noconfirm"],
    _BREW:   ["brew", "install"],
}

# pacman refreshes with -Sy as part of install; dnf refreshes on its own.
REFRESH_COMMANDS: dict[PackageManager, list[str] | None] = {
    _APT:    ["apt-get", "update"],
    _DNF:    None,
    _PACMAN: None,
    _BREW:   ["brew", "update"],
}

REMOVE_COMMANDS: dict[PackageManager, list[str]] = {
    _APT:    ["apt-get", "remove", "-y"],
    _DNF:    ["dnf", "remove", "-y"],
    _PACMAN: ["pacman", "-R", "--noconfirm"],
    _BREW:   ["brew", "uninstall"],
}

# Logical tool name → distro package name, where they differ.
PACKAGE_NAMES: dict[str, dict[PackageManager, str]] = {
    "fd": {_APT: "fd-find", _DNF: "fd-find", _PACMAN: "fd", _BREW: "fd"},
    "delta": {_APT: "git-delta", _DNF: "git-delta", _PACMAN: "git-delta", _BREW: "git-delta"},
}


def _lookup(table: dict, manager: PackageManager, what: str):
    if manager not in table:
        raise UnsupportedEnvironmentError(
            f"No {what} command for package manager: {manager.value}"
        )
    return table[manager]


def package_name(tool: str, manager: PackageManager) -> str:
    return PACKAGE_NAMES.get(tool, {}).get(manager, tool)


def install_plan(
    facts: EnvironmentFacts,
    tools: Sequence[str],
    *,
    refresh: bool = True,
) -> list[tuple[list[str], bool]]:
    """Commands (argv, needs_sudo) that install ``tools``."""
    manager = facts.package_manager
    install = _lookup(INSTALL_COMMANDS, manager, "install")
    refresh_cmd = _lookup(REFRESH_COMMANDS, manager, "refresh")
    names = [package_name(t, manager) for t in tools]

    plan: list[tuple[list[str], bool]] = []
    if refresh and refresh_cmd:
        plan.append((list(refresh_cmd), facts.needs_sudo))
    plan.append(([*install, *names], facts.needs_sudo))
    return plan


def install_packages(
    facts: EnvironmentFacts,
    tools: Sequence[str],
    *,
    refresh: bool = True,
) -> None:
    """Install packages; any failure propagates as CommandError."""
    if not tools:
        return
    logger.info("Installing via %s: %s", facts.package_manager.value, " ".join(tools))
    for argv, sudo in install_plan(facts, tools, refresh=refresh):
        run_command(argv, sudo=sudo)


def remove_packages(facts: EnvironmentFacts, tools: Sequence[str]) -> bool:
    """Best-effort removal. Failures are logged and reported, not raised."""
    manager = facts.package_manager
    remove = _lookup(REMOVE_COMMANDS, manager, "remove")
    names = [package_name(t, manager) for t in tools]
    try:
        run_command([*remove, *names], sudo=facts.needs_sudo)
        if manager == _APT:
            run_command(["apt-get", "autoremove", "-y"], sudo=facts.needs_sudo)
    except CommandError as e:
        logger.warning("Package removal failed: %s", e)
        return False
    return True
