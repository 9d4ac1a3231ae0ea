#!/usr/bin/env python3
"""cli-tools step — ripgrep, fd, fzf, jq, yq, bat, zoxide, delta."""

from __future__ import annotations

import shutil
import sys
from pathlib import Path

from devstrap.adapters.shell.command import require_command
from devstrap.core.models.environment import EnvironmentFacts, PackageManager
from devstrap.core.observability.console import TaggedConsole
from devstrap.core.services.packages import install_packages
from devstrap.steps._common import step_main

TAG = "[install-cli]"

TOOLS = ["ripgrep", "fd", "fzf", "jq", "yq", "bat", "zoxide", "delta"]

VERIFY_COMMANDS = ["rg", "fd", "fzf", "jq", "yq", "bat", "zoxide", "delta"]

# Debian ships these under other names; expose the usual ones.
DEBIAN_ALIASES = {"fd": "fdfind", "bat": "batcat"}


def link_debian_names(bin_dir: Path, console: TaggedConsole) -> list[Path]:
    """Symlink ``fdfind``/``batcat`` to ``fd``/``bat`` in ``bin_dir`` when missing."""
    bin_dir.mkdir(parents=True, exist_ok=True)
    created: list[Path] = []
    for short, debian_name in DEBIAN_ALIASES.items():
        source = shutil.which(debian_name)
        if not source or shutil.which(short):
            continue
        link = bin_dir / short
        if link.is_symlink() or link.exists():
            link.unlink()
        link.symlink_to(source)
        console.info(f"Linked {link} -> {source}")
        created.append(link)
    return created


def report(console: TaggedConsole) -> None:
    console.info("Verifying installs...")
    for tool in VERIFY_COMMANDS:
        path = shutil.which(tool) or "NOT FOUND (open a new shell and re-check)"
        console.info(f"  {tool:<8} {path}")


def install(facts: EnvironmentFacts, console: TaggedConsole) -> None:
    if facts.needs_sudo:
        require_command("sudo")

    console.info(f"Installing via {facts.package_manager.value}: {' '.join(TOOLS)}")
    install_packages(facts, TOOLS)

    if facts.package_manager == PackageManager.APT:
        link_debian_names(Path.home() / ".local" / "bin", console)

    report(console)
    console.success("Done.")


def main(argv: list[str] | None = None) -> int:
    return step_main(TAG, install, argv)


if __name__ == "__main__":
    sys.exit(main())
