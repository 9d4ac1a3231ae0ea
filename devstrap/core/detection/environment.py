"""
Detection — environment facts.

Read-only probes for OS, package manager and privilege. Produces the
single ``EnvironmentFacts`` value the rest of a run consumes.
"""

from __future__ import annotations

import logging
import os
import platform
import shutil
from typing import Callable

from devstrap.core.errors import RootUserError, UnsupportedEnvironmentError
from devstrap.core.models.environment import EnvironmentFacts, OSType, PackageManager

logger = logging.getLogger(__name__)

Which = Callable[[str], str | None]

_SYSTEM_MAP: dict[str, OSType] = {
    "Linux": OSType.LINUX,
    "Darwin": OSType.MACOS,
}

# Probe order on Linux. The CLI name differs from the manager name for apt.
_LINUX_MANAGERS: list[tuple[str, PackageManager]] = [
    ("apt-get", PackageManager.APT),
    ("pacman", PackageManager.PACMAN),
    ("dnf", PackageManager.DNF),
    ("brew", PackageManager.BREW),
]


def is_root_user() -> bool:
    """Whether the current process runs with euid 0."""
    geteuid = getattr(os, "geteuid", None)
    return bool(geteuid and geteuid() == 0)


def detect_os(system: str | None = None) -> OSType:
    """Map ``uname -s`` to an OSType.

    Raises:
        UnsupportedEnvironmentError: For anything other than Linux or macOS.
    """
    system = system if system is not None else platform.system()
    os_type = _SYSTEM_MAP.get(system)
    if os_type is None:
        raise UnsupportedEnvironmentError(
            f"Unsupported OS: {system or 'unknown'}. Only Linux and macOS are supported."
        )
    return os_type


def detect_package_manager(os_type: OSType, which: Which = shutil.which) -> PackageManager:
    """Pick the package manager for the given OS.

    macOS requires Homebrew. Linux takes the first of apt, pacman, dnf,
    brew that resolves on PATH.
    """
    if os_type == OSType.MACOS:
        if which("brew"):
            return PackageManager.BREW
        raise UnsupportedEnvironmentError(
            "Homebrew is required on macOS. Install it first: https://brew.sh"
        )

    for cli, manager in _LINUX_MANAGERS:
        if which(cli):
            return manager

    raise UnsupportedEnvironmentError(
        "Unsupported Linux package manager. Supported: apt, pacman, dnf, brew"
    )


def detect_environment(
    *,
    system: str | None = None,
    which: Which = shutil.which,
    is_root: bool | None = None,
) -> EnvironmentFacts:
    """Compute EnvironmentFacts once.

    Args:
        system: Override for ``platform.system()`` (tests).
        which: Command resolver (tests pass a fake).
        is_root: Override for the euid check (tests).
    """
    os_type = detect_os(system)
    manager = detect_package_manager(os_type, which)
    facts = EnvironmentFacts(
        os_type=os_type,
        package_manager=manager,
        is_root=is_root_user() if is_root is None else is_root,
    )
    logger.info("Detected environment: %s", facts.describe())
    return facts


def ensure_not_root(is_root: bool | None = None) -> None:
    """Refuse to provision a personal environment as root."""
    if is_root_user() if is_root is None else is_root:
        raise RootUserError("Run as a normal user (not root).")


def facts_from_env(environ: dict[str, str] | None = None) -> EnvironmentFacts | None:
    """Rebuild facts exported by the orchestrator (``DEVSTRAP_OS`` etc.).

    Returns None when the variables are absent or not recognised, so a
    step run standalone falls back to detection.
    """
    environ = os.environ if environ is None else environ
    os_name = environ.get("DEVSTRAP_OS")
    pm_name = environ.get("DEVSTRAP_PKG_MANAGER")
    if not os_name or not pm_name:
        return None
    try:
        return EnvironmentFacts(
            os_type=OSType(os_name),
            package_manager=PackageManager(pm_name),
            is_root=is_root_user(),
        )
    except ValueError:
        logger.warning("Ignoring unrecognised DEVSTRAP_OS/DEVSTRAP_PKG_MANAGER")
        return None
