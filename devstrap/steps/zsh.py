#!/usr/bin/env python3
"""
zsh step — zsh, Oh My Zsh, plugins and the managed alias block.

Every sub-step checks before acting, so re-running against a fully or
partially configured machine is safe. ``~/.zshrc`` is rewritten in a
single pass (plugins line + alias block) with one backup, and not at all
when it is already in its target state.
"""

from __future__ import annotations

import sys
from pathlib import Path

from devstrap.adapters.shell.command import command_exists, require_command, run_command
from devstrap.core.detection.probes import HostView, zsh_custom_dir
from devstrap.core.models.environment import EnvironmentFacts
from devstrap.core.observability.console import TaggedConsole
from devstrap.core.services.managed_block import FileUpdate, update_file
from devstrap.core.services.packages import install_packages
from devstrap.core.services.zshrc import rewrite_aliases, set_plugins_line
from devstrap.steps._common import step_main

TAG = "[zsh-setup]"

OH_MY_ZSH_INSTALLER = "https://raw.githubusercontent.com/ohmyzsh/ohmyzsh/master/tools/install.sh"

PLUGIN_REPOS = {
    "zsh-autosuggestions": "https://github.com/zsh-users/zsh-autosuggestions.git",
    "zsh-syntax-highlighting": "https://github.com/zsh-users/zsh-syntax-highlighting.git",
}


def install_zsh(facts: EnvironmentFacts, console: TaggedConsole) -> None:
    if command_exists("zsh"):
        console.success("Zsh is already installed. Skipping installation.")
        return
    console.info("Installing Zsh...")
    install_packages(facts, ["zsh"])
    console.success("Zsh has been installed successfully.")


def install_oh_my_zsh(home: Path, console: TaggedConsole) -> None:
    if (home / ".oh-my-zsh").is_dir():
        console.success("Oh My Zsh is already installed. Skipping installation.")
        return
    console.info("Installing Oh My Zsh...")
    script = run_command(["curl", "-fsSL", OH_MY_ZSH_INSTALLER], capture=True).stdout
    run_command(["sh", "-c", script], env_overrides={"RUNZSH": "no"})
    console.success("Oh My Zsh has been installed successfully.")


def install_plugins(plugins_dir: Path, console: TaggedConsole) -> None:
    plugins_dir.mkdir(parents=True, exist_ok=True)
    for name, repo in PLUGIN_REPOS.items():
        target = plugins_dir / name
        if target.is_dir():
            console.success(f"{name} is already installed.")
            continue
        console.info(f"Installing {name}...")
        run_command(["git", "clone", repo, str(target)])
        console.success(f"{name} has been installed.")


def configure_zshrc(zshrc: Path) -> FileUpdate:
    """Plugins line + managed alias block, in one write."""
    return update_file(zshrc, lambda text: rewrite_aliases(set_plugins_line(text)))


def install(facts: EnvironmentFacts, console: TaggedConsole) -> None:
    console.info("Starting Zsh setup...")
    require_command("curl")
    require_command("git")

    host = HostView()
    install_zsh(facts, console)
    install_oh_my_zsh(host.home, console)
    install_plugins(zsh_custom_dir(host) / "plugins", console)

    console.info("Configuring plugins and aliases in ~/.zshrc...")
    update = configure_zshrc(host.home / ".zshrc")
    if update.changed:
        if update.backup:
            console.info(f"Previous ~/.zshrc saved as {update.backup}")
        console.success("~/.zshrc updated")
    else:
        console.info("~/.zshrc already configured")

    console.success("Zsh setup completed successfully!")
    console.info("Run 'zsh' to start using your new shell, or restart your terminal.")


def main(argv: list[str] | None = None) -> int:
    return step_main(TAG, install, argv)


if __name__ == "__main__":
    sys.exit(main())
