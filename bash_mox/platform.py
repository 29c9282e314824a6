"""Host capability checks for bash-mox.

Two things must be present: a working ``os.mkfifo`` for the intercept
channels, and the configured shell on ``PATH`` to run composed invocations.
"""

from __future__ import annotations

import os
import shutil
import tempfile
import typing as t
from pathlib import Path

from .config import DEFAULT_SHELL

_PYTEST_REQUIRED_MESSAGE: t.Final[str] = (
    "pytest is required to automatically skip unsupported hosts."
)


def fifo_unsupported_reason() -> str | None:
    """Return why named pipes cannot be used here, or ``None`` if they can.

    ``os.mkfifo`` existing is not enough on every filesystem, so a throwaway
    pipe is created in a fresh temporary directory.
    """
    if not hasattr(os, "mkfifo"):
        return "bash-mox requires os.mkfifo, which this platform lacks"
    try:
        with tempfile.TemporaryDirectory(prefix="bash-mox-fifo-check") as tmp_dir:
            os.mkfifo(Path(tmp_dir) / "fifo")
    except OSError as exc:
        return f"Named pipes cannot be created here: {exc}"
    return None


def shell_unsupported_reason(shell: str = DEFAULT_SHELL) -> str | None:
    """Return why *shell* cannot run invocations, or ``None`` if it can."""
    if shutil.which(shell) is None:
        return f"Shell {shell!r} was not found on PATH"
    return None


def unsupported_reason(shell: str = DEFAULT_SHELL) -> str | None:
    """Return the first missing capability, or ``None`` when all are present."""
    return fifo_unsupported_reason() or shell_unsupported_reason(shell)


def is_supported(shell: str = DEFAULT_SHELL) -> bool:
    """Return ``True`` when bash-mox can run with *shell* on this host."""
    return unsupported_reason(shell) is None


def skip_if_unsupported(
    *, reason: str | None = None, shell: str = DEFAULT_SHELL
) -> None:
    """Skip the current pytest test if bash-mox cannot run with *shell*."""
    skip_reason = unsupported_reason(shell)
    if skip_reason is None:
        return

    if reason is not None:
        skip_reason = reason

    try:
        import pytest
    except ModuleNotFoundError as exc:  # pragma: no cover - pytest is a dependency
        raise RuntimeError(_PYTEST_REQUIRED_MESSAGE) from exc

    pytest.skip(skip_reason)


__all__ = [
    "fifo_unsupported_reason",
    "is_supported",
    "shell_unsupported_reason",
    "skip_if_unsupported",
    "unsupported_reason",
]
