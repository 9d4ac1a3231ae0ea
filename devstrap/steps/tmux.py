#!/usr/bin/env python3
"""
tmux step — install tmux and write ~/.tmux.conf.

Usage:
    tmux.py             install tmux and write ~/.tmux.conf
    tmux.py uninstall   remove ~/.tmux.conf (and optionally the package)

An existing ~/.tmux.conf that differs from ours is moved aside to
``~/.tmux.conf.bak-<timestamp>``. Backups are never removed.
"""

from __future__ import annotations

import shutil
import sys
from pathlib import Path

import click

from devstrap.adapters.shell.command import command_exists, require_command
from devstrap.core.detection.environment import ensure_not_root
from devstrap.core.models.environment import EnvironmentFacts
from devstrap.core.observability.console import TaggedConsole
from devstrap.core.services.backup import backup_file
from devstrap.core.services.managed_block import write_atomic
from devstrap.core.services.packages import install_packages, remove_packages
from devstrap.steps._common import step_main

TAG = "[tmux-setup]"

TMUX_CONF = """\
##### Base Config #####

set -g mouse on
set -g history-limit 10000
setw -g mode-keys vi

##### Splits #####
# Default tmux:
#   prefix + "   -> horizontal split
#   prefix + %   -> vertical split
#
# Extra ergonomics:
bind - split-window -v   # prefix + -  -> horizontal
bind | split-window -h   # prefix + |  -> vertical

##### Vim-style pane navigation (no prefix) #####

bind -n C-h select-pane -L
bind -n C-j select-pane -D
bind -n C-k select-pane -U
bind -n C-l select-pane -R

##### Resize panes quickly with Alt + h/j/k/l #####

bind -n M-h resize-pane -L 5
bind -n M-j resize-pane -D 5
bind -n M-k resize-pane -U 5
bind -n M-l resize-pane -R 5

##### Status bar #####

set -g status-bg black
set -g status-fg white
set -g status-left-length 20
set -g status-right-length 100
set -g status-left "#[bold]#S"
set -g status-right "%Y-%m-%d %H:%M "
"""

USAGE_NOTES = """\
tmux environment is now set up.

    tmux new -s dev       # create a new session called "dev"
    Ctrl-b -              # horizontal split (extra)
    Ctrl-b |              # vertical split (extra)
    Ctrl-h/j/k/l          # move between panes (no prefix)
    tmux attach -t dev    # reattach later

Re-running is safe: the package install is skipped if tmux is present and
a changed ~/.tmux.conf is backed up with a timestamp.
To uninstall: tmux.py uninstall
"""


def _preflight(facts: EnvironmentFacts) -> None:
    ensure_not_root(facts.is_root)
    if facts.needs_sudo:
        require_command("sudo")


def write_config(path: Path, console: TaggedConsole) -> Path | None:
    """Write TMUX_CONF to ``path``; returns the backup taken, if any."""
    try:
        if path.read_text(encoding="utf-8") == TMUX_CONF:
            console.info(f"{path} already up to date")
            return None
    except FileNotFoundError:
        pass

    mode = path.stat().st_mode & 0o7777 if path.is_file() else None
    backup = backup_file(path, move=True)
    if backup:
        console.info(f"Backing up existing tmux config: {path} -> {backup}")

    console.info(f"Writing new tmux config to {path}...")
    write_atomic(path, TMUX_CONF, mode=mode)
    return backup


def install(facts: EnvironmentFacts, console: TaggedConsole) -> None:
    _preflight(facts)
    console.info("Starting tmux installation...")

    if command_exists("tmux"):
        console.info("tmux already installed, skipping package install.")
    else:
        install_packages(facts, ["tmux"])

    write_config(Path.home() / ".tmux.conf", console)
    console.success("All done!")
    click.echo()
    click.echo(USAGE_NOTES)


def _remove_if_exists(path: Path, console: TaggedConsole) -> None:
    if path.is_dir() and not path.is_symlink():
        console.info(f"Removing {path}...")
        shutil.rmtree(path)
    elif path.exists() or path.is_symlink():
        console.info(f"Removing {path}...")
        path.unlink()
    else:
        console.info(f"{path} not found, skipping...")


def uninstall(facts: EnvironmentFacts, console: TaggedConsole) -> None:
    _preflight(facts)
    home = Path.home()

    console.warn("This will remove ~/.tmux.conf and ~/.tmux (if present).")
    console.info("Backup files (*.bak-*) will NOT be removed.")
    if not click.confirm("Are you sure you want to continue?", default=False):
        console.info("Uninstall cancelled.")
        return

    _remove_if_exists(home / ".tmux.conf", console)
    _remove_if_exists(home / ".tmux", console)

    if click.confirm("Would you like to uninstall the tmux package as well?", default=False):
        if not remove_packages(facts, ["tmux"]):
            console.warn("tmux could not be removed")
    else:
        console.info("Skipping tmux package uninstallation.")

    console.success("Uninstall complete!")
    console.info("Backups were preserved as ~/.tmux.conf.bak-*")


def main(argv: list[str] | None = None) -> int:
    return step_main(TAG, install, argv, uninstall=uninstall)


if __name__ == "__main__":
    sys.exit(main())
