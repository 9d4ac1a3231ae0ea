"""
EnvironmentFacts — the host facts every step depends on.

Computed once at startup by ``devstrap.core.detection.environment`` and
passed explicitly to whatever needs it. Frozen: nothing mutates it after
detection.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class OSType(str, Enum):
    """Supported operating systems."""

    LINUX = "linux"
    MACOS = "macos"


class PackageManager(str, Enum):
    """Supported package manager front ends."""

    APT = "apt"
    DNF = "dnf"
    PACMAN = "pacman"
    BREW = "brew"


class EnvironmentFacts(BaseModel):
    """Immutable snapshot of the host: OS, package manager, privilege."""

    model_config = ConfigDict(frozen=True)

    os_type: OSType
    package_manager: PackageManager
    is_root: bool = False

    @property
    def needs_sudo(self) -> bool:
        """Whether package operations must go through sudo."""
        return self.package_manager != PackageManager.BREW and not self.is_root

    def describe(self) -> str:
        return f"{self.os_type.value} ({self.package_manager.value})"

    def to_env(self) -> dict[str, str]:
        """Environment variables handed to step processes."""
        return {
            "DEVSTRAP_OS": self.os_type.value,
            "DEVSTRAP_PKG_MANAGER": self.package_manager.value,
        }
