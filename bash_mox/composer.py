"""Assemble the single bash command line executed for one run."""

from __future__ import annotations

import dataclasses as dc
import enum
import os
import shlex
import typing as t
from pathlib import Path

DECLARE_ONLY_FLAG: t.Final[str] = "--source-only"


class LoadMode(enum.StrEnum):
    """How a source unit is loaded before the target command runs."""

    EXECUTE = "execute"
    DECLARE_ONLY = "declare-only"


@dc.dataclass(frozen=True, slots=True)
class SourceUnit:
    """A script sourced into the shell ahead of the target command.

    ``DECLARE_ONLY`` units are sourced with :data:`DECLARE_ONLY_FLAG` as their
    sole argument. Scripts following that convention define their functions
    and variables but skip their top-level entry point.
    """

    path: Path
    mode: LoadMode = LoadMode.EXECUTE

    def __post_init__(self) -> None:
        """Normalise ``path`` and ``mode``."""
        if not isinstance(self.path, Path):
            object.__setattr__(self, "path", Path(self.path))
        if not isinstance(self.mode, LoadMode):
            object.__setattr__(self, "mode", LoadMode(self.mode))

    @classmethod
    def execute(cls, path: os.PathLike[str] | str) -> SourceUnit:
        """Return a unit that is sourced and fully executed."""
        return cls(Path(path), LoadMode.EXECUTE)

    @classmethod
    def declare_only(cls, path: os.PathLike[str] | str) -> SourceUnit:
        """Return a unit that only contributes its definitions."""
        return cls(Path(path), LoadMode.DECLARE_ONLY)

    def load_statement(self) -> str:
        """Return the ``source`` statement for this unit."""
        statement = f"source {shlex.quote(os.fspath(self.path))}"
        if self.mode is LoadMode.DECLARE_ONLY:
            statement = f"{statement} {DECLARE_ONLY_FLAG}"
        return statement


@dc.dataclass(frozen=True, slots=True)
class ComposedInvocation:
    """The ordered fragments of one run.

    Attributes
    ----------
    setup : str
        Interception setup; always emitted first so shims exist before any
        source unit or the target refers to a mocked name.
    loads : tuple[str, ...]
        One ``source`` statement per unit, in declaration order.
    target : str
        The target command followed by its shell-quoted arguments.
    """

    setup: str
    loads: tuple[str, ...]
    target: str

    @property
    def fragments(self) -> tuple[str, ...]:
        """Return the non-empty fragments in execution order."""
        return tuple(part for part in (self.setup, *self.loads, self.target) if part)

    @property
    def command_line(self) -> str:
        """Return the text passed to ``bash -c``.

        Fragments are newline separated so bash reads each one as a separate
        line; aliases defined by the setup only expand on later lines.
        """
        return "\n".join(self.fragments)

    def __str__(self) -> str:
        return self.command_line


def render_target(command: str, args: t.Iterable[str] = ()) -> str:
    """Return *command* followed by *args*, each quoted for the shell."""
    if not command:
        msg = "command must not be empty"
        raise ValueError(msg)
    return shlex.join([command, *(os.fspath(arg) for arg in args)])


def compose_invocation(
    setup: str,
    sources: t.Iterable[SourceUnit],
    command: str,
    args: t.Iterable[str] = (),
) -> ComposedInvocation:
    """Combine interception *setup*, *sources* and the target into one invocation."""
    return ComposedInvocation(
        setup=setup,
        loads=tuple(unit.load_statement() for unit in sources),
        target=render_target(command, args),
    )
