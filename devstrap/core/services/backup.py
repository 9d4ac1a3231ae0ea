"""
Backups — timestamped copies before anything is overwritten.

Naming: ``<original-name>.bak-<YYYYmmdd-HHMMSS>`` next to the original.
Backups are never cleaned up automatically.
"""

from __future__ import annotations

import logging
import shutil
import time
from pathlib import Path

logger = logging.getLogger(__name__)

BACKUP_TS_FORMAT = "%Y%m%d-%H%M%S"


def backup_timestamp() -> str:
    return time.strftime(BACKUP_TS_FORMAT)


def backup_path_for(path: Path, ts: str | None = None) -> Path:
    """Where the backup of ``path`` taken at ``ts`` lives."""
    return path.with_name(f"{path.name}.bak-{ts or backup_timestamp()}")


def backup_file(path: Path, *, move: bool = False, ts: str | None = None) -> Path | None:
    """Back up ``path`` if it exists.

    Copies with metadata preserved (``shutil.copy2``), or renames the
    original out of the way when ``move`` is set (the caller is about to
    write a fresh file).

    Returns:
        The backup path, or None when there was nothing to back up.
    """
    if not path.exists():
        logger.debug("backup: path does not exist, skipping: %s", path)
        return None

    dest = backup_path_for(path, ts)
    if move:
        path.rename(dest)
    elif path.is_dir():
        shutil.copytree(path, dest, symlinks=True, dirs_exist_ok=True)
    else:
        shutil.copy2(path, dest)

    logger.info("Backed up %s → %s", path, dest)
    return dest
