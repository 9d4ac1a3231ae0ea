"""
~/.zshrc rules — plugin line and the managed alias block.

Shared by the zsh step (which writes) and the capability probe (which
only reads), so both agree on what "configured" means.
"""

from __future__ import annotations

import re

from devstrap.core.services.managed_block import ManagedBlock, replace_block

ALIAS_BLOCK = ManagedBlock(
    start="# >>> devstrap managed aliases >>>",
    end="# <<< devstrap managed aliases <<<",
)

# Written by earlier versions of these scripts; recognised and replaced.
LEGACY_ALIAS_BLOCK = ManagedBlock(
    start="# >>> codex managed aliases >>>",
    end="# <<< codex managed aliases <<<",
)

PLUGINS = ("git", "zsh-autosuggestions", "zsh-syntax-highlighting")
PLUGINS_LINE = f"plugins=({' '.join(PLUGINS)})"

ALIAS_COMMENT = "# Prefer modern CLI tools when available."
RELOAD_ALIAS = "alias reload='source ~/.zshrc'"
DEV_ALIAS = "alias dev='tmux attach -t dev'"

ALIAS_BODY = f"""\
{ALIAS_COMMENT}
if command -v bat >/dev/null 2>&1; then
  alias cat='bat --paging=never'
elif command -v batcat >/dev/null 2>&1; then
  alias cat='batcat --paging=never'
fi

if command -v rg >/dev/null 2>&1; then
  alias grep='rg'
fi

if command -v fd >/dev/null 2>&1; then
  alias find='fd'
elif command -v fdfind >/dev/null 2>&1; then
  alias find='fdfind'
fi

if command -v zoxide >/dev/null 2>&1; then
  eval "$(zoxide init zsh)"
  alias cd='z'
fi

{RELOAD_ALIAS}
{DEV_ALIAS}
"""

# Openers of unmanaged conditional blocks; everything up to "fi" goes.
_LEGACY_IF_OPENERS = frozenset(
    f"if command -v {tool} >/dev/null 2>&1; then"
    for tool in ("bat", "rg", "fd", "zoxide")
)

_LEGACY_LINES = frozenset({
    ALIAS_COMMENT,
    "alias cat='bat --paging=never'",
    "alias cat='batcat --paging=never'",
    "alias grep='rg'",
    "alias find='fd'",
    "alias find='fdfind'",
    "alias cd='z'",
    RELOAD_ALIAS,
    DEV_ALIAS,
    "  alias cd='z'",
    '  eval "$(zoxide init zsh)"',
})

_PLUGINS_RE = re.compile(r"^plugins=.*$", re.MULTILINE)


def strip_legacy_aliases(lines: list[str]) -> list[str]:
    """Remove unmanaged alias lines/blocks that the managed block replaces."""
    kept: list[str] = []
    in_if = False
    for line in lines:
        if in_if:
            if line == "fi":
                in_if = False
            continue
        if line in _LEGACY_IF_OPENERS:
            in_if = True
            continue
        if line in _LEGACY_LINES:
            continue
        kept.append(line)
    return kept


def rewrite_aliases(text: str) -> str:
    """Return zshrc text with exactly one fresh managed alias block."""
    return replace_block(
        text,
        ALIAS_BLOCK,
        ALIAS_BODY,
        legacy_blocks=[LEGACY_ALIAS_BLOCK],
        line_filter=strip_legacy_aliases,
    )


def plugins_configured(text: str) -> bool:
    return all(p in text for p in PLUGINS[1:])


def set_plugins_line(text: str) -> str:
    """Point the ``plugins=`` line at our plugin list (append if absent)."""
    if plugins_configured(text):
        return text
    if _PLUGINS_RE.search(text):
        return _PLUGINS_RE.sub(PLUGINS_LINE, text)
    if text and not text.endswith("\n"):
        text += "\n"
    return text + PLUGINS_LINE + "\n"


def aliases_present(text: str) -> bool:
    """Whether the aliases are configured, managed or legacy form."""
    if ALIAS_BLOCK.present_in(text) or LEGACY_ALIAS_BLOCK.present_in(text):
        return True
    lines = set(text.splitlines())
    return {ALIAS_COMMENT, RELOAD_ALIAS, DEV_ALIAS} <= lines
