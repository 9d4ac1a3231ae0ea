"""
Managed blocks — marker-delimited regions of config files that devstrap owns.

Rewriting is always: parse → strip managed section(s) → append a fresh
section → atomic write, preceded by a timestamped backup of the prior
file. If the rendered content equals what is on disk nothing is written,
so re-running a step is a no-op for files already in their target state.
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable

from devstrap.core.services.backup import backup_file

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ManagedBlock:
    """Start/end marker pair. Markers must match whole lines."""

    start: str
    end: str

    def render(self, body: str) -> str:
        body = body.rstrip("\n")
        return f"{self.start}\n{body}\n{self.end}\n"

    def present_in(self, text: str) -> bool:
        return self.start in text.splitlines()


@dataclass(frozen=True)
class FileUpdate:
    """What ``update_file`` did."""

    path: Path
    changed: bool
    backup: Path | None = None


def strip_blocks(lines: Iterable[str], blocks: Iterable[ManagedBlock]) -> list[str]:
    """Drop every line inside (and including) any of the given blocks.

    An unterminated block swallows the rest of the file, matching how the
    block was written in the first place.
    """
    blocks = list(blocks)
    starts = {b.start: b.end for b in blocks}
    kept: list[str] = []
    end_marker: str | None = None

    for line in lines:
        if end_marker is not None:
            if line == end_marker:
                end_marker = None
            continue
        if line in starts:
            end_marker = starts[line]
            continue
        kept.append(line)

    return kept


def replace_block(
    text: str,
    block: ManagedBlock,
    body: str,
    *,
    legacy_blocks: Iterable[ManagedBlock] = (),
    line_filter: Callable[[list[str]], list[str]] | None = None,
) -> str:
    """Return ``text`` with ``block`` re-rendered at the end.

    Args:
        text: Current file contents.
        block: The block being (re)written.
        body: Block contents, without markers.
        legacy_blocks: Older marker pairs to remove as well.
        line_filter: Extra cleanup over the remaining lines (legacy
            unmanaged lines that the block now owns).
    """
    lines = strip_blocks(text.splitlines(), [block, *legacy_blocks])
    if line_filter is not None:
        lines = line_filter(lines)

    prefix = "\n".join(lines)
    if prefix:
        prefix += "\n"
    return prefix + block.render(body)


def remove_block(text: str, block: ManagedBlock) -> str:
    if not block.present_in(text):
        return text
    lines = strip_blocks(text.splitlines(), [block])
    return "\n".join(lines) + "\n" if lines else ""


def _default_mode() -> int:
    """What a plain open() would create under the current umask."""
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def write_atomic(path: Path, content: str, *, mode: int | None = None) -> None:
    """Write ``content`` to ``path`` via a temp file and ``os.replace``.

    The original stays intact if anything fails before the rename. File
    mode is ``mode`` if given, else carried over from the file being
    replaced, else the umask default (never mkstemp's 0600).
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    if mode is None:
        mode = path.stat().st_mode & 0o7777 if path.exists() else _default_mode()

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(content)
            fh.flush()
            os.fsync(fh.fileno())
        os.chmod(tmp, mode)
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


def update_file(
    path: Path,
    transform: Callable[[str], str],
    *,
    backup: bool = True,
) -> FileUpdate:
    """Apply ``transform`` to a file's text, writing only if it changed.

    A missing file reads as the empty string. When a write happens and
    the file already existed, a timestamped backup is taken first.
    """
    try:
        current = path.read_text(encoding="utf-8")
        existed = True
    except FileNotFoundError:
        current = ""
        existed = False

    updated = transform(current)
    if existed and updated == current:
        logger.debug("%s already up to date", path)
        return FileUpdate(path=path, changed=False)

    backup_dest = backup_file(path) if (backup and existed) else None
    write_atomic(path, updated)
    logger.info("Wrote %s", path)
    return FileUpdate(path=path, changed=True, backup=backup_dest)
