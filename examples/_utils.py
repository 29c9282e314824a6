"""Shared helpers for the runnable examples."""

from __future__ import annotations

import textwrap
import typing as t

if t.TYPE_CHECKING:  # pragma: no cover - typing only
    from pathlib import Path


def write_script(directory: Path, name: str, body: str) -> Path:
    """Write a dedented shell script to ``directory/name`` and return its path."""
    path = directory / name
    path.write_text(textwrap.dedent(body), encoding="utf-8")
    return path
