"""Helpers for driving intercept channels from tests."""

from __future__ import annotations

import typing as t

from bash_mox.channel import encode_record

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    from pathlib import Path


def write_call(path: Path, vector: t.Sequence[str]) -> None:
    """Append one record to the FIFO at *path*, as a shell shim would."""
    with path.open("ab") as pipe:
        pipe.write(encode_record(vector))
