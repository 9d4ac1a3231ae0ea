#!/usr/bin/env python3
"""
micro step — micro editor with the TypeScript LSP plugin.

Usage:
    micro.py             install micro, TypeScript tooling and the lsp plugin
    micro.py uninstall   remove the lsp plugin and PATH block (package optional)

Requires node/npm (the nvm step runs first).
"""

from __future__ import annotations

import json
import os
import shutil
import sys
from pathlib import Path

import click

from devstrap.adapters.shell.command import command_exists, require_command, run_command
from devstrap.core.errors import CommandError, StepError
from devstrap.core.models.environment import EnvironmentFacts
from devstrap.core.observability.console import TaggedConsole
from devstrap.core.services.managed_block import (
    FileUpdate,
    ManagedBlock,
    remove_block,
    replace_block,
    update_file,
)
from devstrap.core.services.packages import install_packages, remove_packages
from devstrap.steps._common import step_main

TAG = "[micro-setup]"

LSP_PLUGIN_REPO = "https://github.com/AndCake/micro-plugin-lsp"

NPM_PACKAGES = ["typescript", "typescript-language-server"]

VERIFY_COMMANDS = ["micro", "node", "npm", "typescript-language-server", "tsc"]

NPM_PATH_BLOCK = ManagedBlock(
    start="# >>> devstrap npm global bin >>>",
    end="# <<< devstrap npm global bin <<<",
)

LSP_SETTINGS = {
    "lsp.server": (
        "typescript=typescript-language-server --stdio,"
        "javascript=typescript-language-server --stdio"
    ),
    "lsp.tabcompletion": True,
    "lsp.formatOnSave": False,
    "lsp.autocompleteDetails": False,
}


def micro_config_dir(home: Path) -> Path:
    return home / ".config" / "micro"


def npm_global_install(package: str, console: TaggedConsole) -> None:
    try:
        run_command(["npm", "install", "-g", package])
        return
    except CommandError:
        if not command_exists("sudo"):
            raise StepError(
                f"Failed to install npm package '{package}' globally and sudo is unavailable"
            )
    console.info(f"Retrying npm global install with sudo: {package}")
    run_command(["npm", "install", "-g", package], sudo=True)


def npm_global_bin() -> Path | None:
    result = run_command(["npm", "config", "get", "prefix"], capture=True, check=False)
    prefix = result.stdout.strip()
    if not result.ok or not prefix:
        return None
    return Path(prefix) / "bin"


def ensure_on_path(bin_dir: Path, profile: Path, path_env: str) -> FileUpdate | None:
    """Add ``bin_dir`` to PATH via a managed block in ``profile``.

    Nothing happens when the directory is missing or already on PATH.
    """
    if not bin_dir.is_dir():
        return None
    if str(bin_dir) in path_env.split(os.pathsep):
        return None
    body = f'export PATH="{bin_dir}:$PATH"'
    return update_file(profile, lambda text: replace_block(text, NPM_PATH_BLOCK, body))


def install_lsp_plugin(plugin_root: Path, console: TaggedConsole) -> None:
    require_command("micro")
    console.info("Installing micro lsp plugin")
    try:
        run_command(["micro", "-plugin", "install", "lsp"])
        return
    except CommandError:
        console.info("micro plugin command failed, falling back to direct git clone")

    require_command("git")
    target = plugin_root / "lsp"
    plugin_root.mkdir(parents=True, exist_ok=True)
    if (target / ".git").is_dir():
        run_command(["git", "-C", str(target), "pull", "--ff-only"])
    else:
        if target.exists():
            shutil.rmtree(target)
        run_command(["git", "clone", LSP_PLUGIN_REPO, str(target)])


def merge_settings(text: str, path: Path | None = None) -> str:
    """Merge LSP keys into micro's settings.json text."""
    raw = text.strip()
    try:
        data = json.loads(raw) if raw else {}
    except json.JSONDecodeError as e:
        raise StepError(f"Failed to parse {path or 'settings.json'}: {e}") from e
    if not isinstance(data, dict):
        raise StepError(f"Expected a JSON object in {path or 'settings.json'}")
    data.update(LSP_SETTINGS)
    return json.dumps(data, indent=2) + "\n"


def configure_settings(settings: Path) -> FileUpdate:
    return update_file(settings, lambda text: merge_settings(text, settings))


def verify(console: TaggedConsole) -> None:
    missing = []
    for cmd in VERIFY_COMMANDS:
        path = shutil.which(cmd)
        console.info(f"  {cmd:<26} {path or 'NOT FOUND'}")
        if not path:
            missing.append(cmd)
    if missing:
        raise StepError(f"One or more required commands are missing: {', '.join(missing)}")


def install(facts: EnvironmentFacts, console: TaggedConsole) -> None:
    home = Path.home()

    console.info("Installing micro")
    install_packages(facts, ["micro"])

    require_command("node")
    require_command("npm")

    console.info("Installing TypeScript language tooling")
    for package in NPM_PACKAGES:
        npm_global_install(package, console)

    bin_dir = npm_global_bin()
    if bin_dir is not None:
        update = ensure_on_path(bin_dir, home / ".profile", os.environ.get("PATH", ""))
        if update and update.changed:
            console.info(f"Added {bin_dir} to PATH in ~/.profile")

    config_dir = micro_config_dir(home)
    install_lsp_plugin(config_dir / "plug", console)

    update = configure_settings(config_dir / "settings.json")
    console.info(f"Updated {update.path}" if update.changed else f"{update.path} already up to date")

    console.info("Verification")
    verify(console)

    console.blank()
    console.success("Done.")
    console.info("If PATH changed, restart your shell (or run: source ~/.profile).")
    console.info("Open any .ts/.tsx/.js/.jsx file in micro to start the TypeScript LSP.")


def uninstall(facts: EnvironmentFacts, console: TaggedConsole) -> None:
    home = Path.home()

    plugin = micro_config_dir(home) / "plug" / "lsp"
    if plugin.exists():
        console.info(f"Removing {plugin}...")
        shutil.rmtree(plugin)
    else:
        console.info(f"{plugin} not found, skipping...")

    profile = home / ".profile"
    if profile.exists():
        update_file(profile, lambda text: remove_block(text, NPM_PATH_BLOCK))

    if click.confirm("Would you like to uninstall the micro package as well?", default=False):
        if not remove_packages(facts, ["micro"]):
            console.warn("micro could not be removed")

    console.success("Uninstall complete! settings.json and its backups were left in place.")


def main(argv: list[str] | None = None) -> int:
    return step_main(TAG, install, argv, uninstall=uninstall)


if __name__ == "__main__":
    sys.exit(main())
