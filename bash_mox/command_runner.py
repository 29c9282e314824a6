"""Run a composed invocation in a fresh shell and capture its output."""

from __future__ import annotations

import dataclasses as dc
import logging
import os
import subprocess
import typing as t

from .config import DEFAULT_SHELL
from .errors import ScriptFailureError, SpawnError

if t.TYPE_CHECKING:  # pragma: no cover - used for type hints
    from .composer import ComposedInvocation

logger = logging.getLogger(__name__)


@dc.dataclass(frozen=True, slots=True)
class RunResult:
    """Outcome of one run: interleaved stdout/stderr and the exit status."""

    output: bytes
    exit_code: int
    command_line: str

    @property
    def succeeded(self) -> bool:
        """Return ``True`` when the script exited with status 0."""
        return self.exit_code == 0

    @property
    def text(self) -> str:
        """Return :attr:`output` decoded for display."""
        return self.output.decode("utf-8", errors="replace")

    def check(self) -> RunResult:
        """Return ``self``, raising :class:`ScriptFailureError` on non-zero exit."""
        if not self.succeeded:
            raise ScriptFailureError(self)
        return self


def prepare_environment(extra_env: t.Mapping[str, str] | None) -> dict[str, str]:
    """Return the current environment overlaid with *extra_env*."""
    return dict(os.environ) | dict(extra_env or {})


class ScriptRunner:
    """Execute command lines with ``<shell> -c``.

    No timeout is applied; a script that hangs hangs the run.
    """

    def __init__(
        self,
        *,
        shell: str = DEFAULT_SHELL,
        extra_env: t.Mapping[str, str] | None = None,
        cwd: os.PathLike[str] | str | None = None,
    ) -> None:
        self.shell = shell
        self._extra_env = dict(extra_env or {})
        self._cwd = cwd

    def run(self, invocation: ComposedInvocation | str) -> RunResult:
        """Run *invocation* and return its combined output and exit status.

        A non-zero exit is not an error here; see :meth:`RunResult.check`.

        Raises
        ------
        SpawnError
            If the interpreter is missing or cannot be executed.
        """
        command_line = str(invocation)
        logger.debug("Running via %s -c:\n%s", self.shell, command_line)
        try:
            completed = subprocess.run(  # noqa: S603 - argv form, no outer shell
                [self.shell, "-c", command_line],
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                env=prepare_environment(self._extra_env),
                cwd=self._cwd,
                check=False,
            )
        except FileNotFoundError as exc:
            msg = f"{self.shell}: not found"
            raise SpawnError(self.shell, msg) from exc
        except PermissionError as exc:
            msg = f"{self.shell}: not executable: {exc}"
            raise SpawnError(self.shell, msg) from exc
        except OSError as exc:
            msg = f"{self.shell}: execution failed: {exc}"
            raise SpawnError(self.shell, msg) from exc

        result = RunResult(
            output=completed.stdout,
            exit_code=completed.returncode,
            command_line=command_line,
        )
        if result.succeeded:
            logger.debug("call output:\n%s", result.text)
        else:
            logger.error(
                "Script exited with status %d; output:\n%s",
                result.exit_code,
                result.text,
            )
        return result
