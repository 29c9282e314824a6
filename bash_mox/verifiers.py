"""Call assertions over the recorders of a :class:`~bash_mox.MockRegistry`."""

from __future__ import annotations

import typing as t
from textwrap import indent

from .errors import CallCountError, NeverCalledError, NoMatchError, NotMockedError

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    from .recorder import ArgumentVector, CallRecorder


def _format_call(vector: t.Sequence[str]) -> str:
    if not vector:
        return "()"
    name, *args = vector
    return f"{name}({', '.join(repr(arg) for arg in args)})"


def _numbered(entries: t.Sequence[str], *, start: int = 1) -> str:
    if not entries:
        return "(none)"
    return "\n".join(
        f"{index}. {entry}" for index, entry in enumerate(entries, start=start)
    )


def _format_sections(title: str, sections: list[tuple[str, str]]) -> str:
    parts = [title]
    for label, body in sections:
        if not body:
            continue
        parts.append("")
        parts.append(f"{label}:")
        parts.append(indent(body, "  "))
    return "\n".join(parts)


def _describe_calls(calls: t.Sequence[ArgumentVector]) -> str:
    return _numbered([_format_call(call) for call in calls])


def _expected_vector(command: str, expected_args: t.Iterable[str]) -> ArgumentVector:
    return (command, *expected_args)


def _require_recorder(
    recorders: t.Mapping[str, CallRecorder], command: str, expected: ArgumentVector
) -> CallRecorder:
    recorder = recorders.get(command)
    if recorder is None:
        mocked = ", ".join(repr(name) for name in sorted(recorders)) or "(none)"
        msg = _format_sections(
            f"Command {command!r} is not mocked.",
            [("Expected", _format_call(expected)), ("Mocked commands", mocked)],
        )
        raise NotMockedError(msg, command=command, expected=expected)
    return recorder


class CallVerifier:
    """Check that a mocked command was called with an exact argument vector."""

    def __init__(self, recorders: t.Mapping[str, CallRecorder]) -> None:
        self._recorders = recorders

    def verify(self, command: str, expected_args: t.Iterable[str]) -> None:
        """Raise unless some recorded call equals ``(command, *expected_args)``.

        Vectors are compared element-wise and must have equal length, so a
        recorded call that merely starts with the expected arguments does not
        match.

        Raises
        ------
        NotMockedError
            *command* was not registered.
        NeverCalledError
            *command* was registered but never invoked.
        NoMatchError
            No recorded call matches.
        """
        expected = _expected_vector(command, expected_args)
        recorder = _require_recorder(self._recorders, command, expected)
        calls = recorder.calls
        if not calls:
            msg = _format_sections(
                f"Command {command!r} was not called.",
                [("Expected", _format_call(expected))],
            )
            raise NeverCalledError(msg, command=command, expected=expected)
        if expected in calls:
            return
        msg = _format_sections(
            f"Command {command!r} was not called with the expected arguments.",
            [
                ("Expected", _format_call(expected)),
                ("Recorded calls", _describe_calls(calls)),
            ],
        )
        raise NoMatchError(msg, command=command, expected=expected, calls=calls)


class CallCountVerifier:
    """Check how many times a command was called with an exact vector."""

    def __init__(self, recorders: t.Mapping[str, CallRecorder]) -> None:
        self._recorders = recorders

    def verify(
        self, command: str, expected_args: t.Iterable[str], times: int
    ) -> None:
        """Raise unless exactly *times* recorded calls match.

        ``times=0`` asserts the vector was never seen.
        """
        if times < 0:
            msg = "times must be >= 0"
            raise ValueError(msg)
        expected = _expected_vector(command, expected_args)
        recorder = _require_recorder(self._recorders, command, expected)
        actual = recorder.count(expected)
        if actual == times:
            return
        calls = recorder.calls
        msg = _format_sections(
            f"Command {command!r} call count mismatch.",
            [
                ("Expected", _format_call(expected)),
                ("Observed calls", f"{actual} (expected {times})"),
                ("Recorded calls", _describe_calls(calls)),
            ],
        )
        raise CallCountError(msg, command=command, expected=expected, calls=calls)
