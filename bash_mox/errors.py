"""Exception hierarchy for bash-mox."""

from __future__ import annotations

import typing as t

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    from .command_runner import RunResult
    from .recorder import ArgumentVector


class BashMoxError(Exception):
    """Base class for all bash-mox errors."""


class LifecycleError(BashMoxError):
    """Raised when an environment is driven out of order."""


class SetupError(BashMoxError):
    """Raised when the temporary directory or a channel cannot be created."""


class ChannelError(BashMoxError):
    """Raised when an intercept channel cannot be synchronised."""


class SpawnError(BashMoxError):
    """Raised when the shell interpreter cannot be started."""

    def __init__(self, shell: str, message: str) -> None:
        super().__init__(message)
        self.shell = shell


class ScriptFailureError(BashMoxError):
    """Raised when the composed invocation exits with a non-zero status.

    The captured output is kept on :attr:`result` so callers can log it.
    """

    def __init__(self, result: RunResult) -> None:
        output = result.output.decode("utf-8", errors="replace")
        msg = (
            f"Script exited with status {result.exit_code}\n"
            f"command: {result.command_line}\n"
            f"output:\n{output}"
        )
        super().__init__(msg)
        self.result = result


class CallAssertionError(BashMoxError, AssertionError):
    """Base class for failed call assertions.

    Attributes
    ----------
    command : str
        The command name the assertion targeted.
    expected : tuple[str, ...]
        The expected argument vector, command name first.
    calls : tuple[ArgumentVector, ...]
        Every call recorded for ``command`` at the time of the assertion.
    """

    def __init__(
        self,
        message: str,
        *,
        command: str,
        expected: ArgumentVector,
        calls: t.Sequence[ArgumentVector] = (),
    ) -> None:
        super().__init__(message)
        self.command = command
        self.expected = expected
        self.calls = tuple(calls)


class NotMockedError(CallAssertionError):
    """The command was never registered as a mock."""


class NeverCalledError(CallAssertionError):
    """The command was mocked but no call was recorded."""


class NoMatchError(CallAssertionError):
    """Calls were recorded but none matched the expected arguments."""


class CallCountError(CallAssertionError):
    """Matching calls were recorded a different number of times than expected."""


__all__ = [
    "BashMoxError",
    "CallAssertionError",
    "CallCountError",
    "ChannelError",
    "LifecycleError",
    "NeverCalledError",
    "NoMatchError",
    "NotMockedError",
    "ScriptFailureError",
    "SetupError",
    "SpawnError",
]
