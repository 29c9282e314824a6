"""Shared validation helpers."""

from __future__ import annotations

import math
import re
import typing as t

# Names end up unquoted in function and alias definitions, so only characters
# bash accepts there without quoting are allowed.
_COMMAND_NAME_RE: t.Final[re.Pattern[str]] = re.compile(
    r"[A-Za-z0-9_][A-Za-z0-9_.:+-]*"
)


def validate_positive_finite_timeout(timeout: float) -> None:
    """Ensure *timeout* represents a usable synchronisation timeout."""
    if isinstance(timeout, bool):
        msg = "timeout must be a real number"
        raise TypeError(msg)

    if not (timeout > 0 and math.isfinite(timeout)):
        msg = "timeout must be > 0 and finite"
        raise ValueError(msg)


def validate_command_name(name: str) -> None:
    """Raise ``ValueError`` unless *name* is safe to shadow in bash."""
    if not isinstance(name, str) or _COMMAND_NAME_RE.fullmatch(name) is None:
        msg = f"Invalid command name: {name!r}"
        raise ValueError(msg)
