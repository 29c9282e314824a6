"""Filesystem helpers for channel directories: FIFO creation and cleanup."""

from __future__ import annotations

import logging
import os
import shutil
import stat
import typing as t

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    from pathlib import Path

_logger = logging.getLogger(__name__)

FIFO_MODE: t.Final[int] = 0o600


def make_fifo(path: Path, *, mode: int = FIFO_MODE) -> Path:
    """Create a named pipe at *path* and return it.

    Raises
    ------
    FileExistsError
        If something other than a FIFO already occupies *path*.
    OSError
        If the pipe cannot be created.
    """
    try:
        os.mkfifo(path, mode)
    except FileExistsError:
        if not stat.S_ISFIFO(path.lstat().st_mode):
            msg = f"{path} already exists and is not a FIFO"
            raise FileExistsError(msg) from None
        _logger.debug("Reusing existing FIFO %s", path)
    else:
        _logger.debug("mkfifo: %s", path)
    return path


def remove_tree(path: Path) -> None:
    """Remove the directory tree at *path* in a single attempt.

    A path that is already gone counts as removed. Any other ``OSError``
    propagates unchanged.
    """
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        if path.exists():
            raise
        return
    _logger.debug("Removed channel directory %s", path)
