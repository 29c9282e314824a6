"""Append-only call log for a single mocked command."""

from __future__ import annotations

import threading
import typing as t

ArgumentVector = tuple[str, ...]


class CallRecorder:
    """Record the argument vectors observed for one command.

    Vectors are appended by the channel listener thread and read by the test
    thread once the run has been synchronised. Identical vectors are kept as
    separate entries so repeated calls remain countable.
    """

    def __init__(self, command: str) -> None:
        self.command = command
        self._calls: list[ArgumentVector] = []
        self._lock = threading.Lock()

    def append(self, vector: t.Iterable[str]) -> ArgumentVector:
        """Store *vector* and return the immutable copy that was recorded."""
        recorded = tuple(vector)
        with self._lock:
            self._calls.append(recorded)
        return recorded

    @property
    def calls(self) -> tuple[ArgumentVector, ...]:
        """Return a snapshot of every recorded vector in arrival order."""
        with self._lock:
            return tuple(self._calls)

    def count(self, vector: t.Sequence[str]) -> int:
        """Return how many recorded vectors equal *vector*."""
        wanted = tuple(vector)
        with self._lock:
            return sum(1 for call in self._calls if call == wanted)

    def __len__(self) -> int:
        with self._lock:
            return len(self._calls)

    def __repr__(self) -> str:
        return f"CallRecorder(command={self.command!r}, calls={list(self.calls)!r})"
