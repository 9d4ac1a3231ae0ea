"""
Tagged console output — what the operator sees.

Every line is prefixed with a component tag (``[bootstrap]``,
``[zsh-setup]``, ...). Errors go to stderr in red; everything else to
stdout. Diagnostic detail belongs in ``logging``, not here.
"""

from __future__ import annotations

import click


class TaggedConsole:
    """Colorized, tag-prefixed console lines via ``click.secho``."""

    def __init__(self, tag: str, *, quiet: bool = False):
        self.tag = tag
        self.quiet = quiet

    def _line(self, message: str) -> str:
        return f"{self.tag} {message}"

    def info(self, message: str) -> None:
        if not self.quiet:
            click.echo(self._line(message))

    def success(self, message: str) -> None:
        if not self.quiet:
            click.secho(self._line(message), fg="green")

    def warn(self, message: str) -> None:
        click.secho(self._line(f"WARNING: {message}"), fg="yellow", err=True)

    def error(self, message: str) -> None:
        click.secho(self._line(f"ERROR: {message}"), fg="red", err=True)

    def blank(self) -> None:
        if not self.quiet:
            click.echo()
