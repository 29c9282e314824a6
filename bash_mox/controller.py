"""BashEnvironment: mocks, sources and a target command run as one unit."""

from __future__ import annotations

import enum
import logging
import typing as t

from .command_runner import RunResult, ScriptRunner
from .composer import ComposedInvocation, SourceUnit, compose_invocation
from .config import HarnessConfig
from .errors import LifecycleError
from .registry import MockRegistry

if t.TYPE_CHECKING:
    import os
    import types
    from pathlib import Path

    from .recorder import ArgumentVector

logger = logging.getLogger(__name__)


class Phase(enum.StrEnum):
    """Lifecycle phases of a single run."""

    IDLE = "IDLE"
    COMPOSING = "COMPOSING"
    SPAWNED = "SPAWNED"
    COMPLETED = "COMPLETED"


class BashEnvironment:
    """Run one shell command with selected external commands intercepted.

    Entering the context registers the mocks: a temporary directory is
    created under ``base_dir`` with one FIFO per mocked command and a listener
    per FIFO. :meth:`call_with_env` then runs::

        <interception setup>
        source <unit> [--source-only]   # one per source unit, in order
        <command> <args...>

    in a fresh shell. Calls to mocked commands are recorded instead of
    executed and can be checked with :meth:`assert_called_with`, including
    after the context has exited.
    """

    def __init__(
        self,
        sources: t.Iterable[SourceUnit] = (),
        mocks: t.Iterable[str] = (),
        *,
        base_dir: Path | str | None = None,
        config: HarnessConfig | None = None,
        extra_env: t.Mapping[str, str] | None = None,
        cwd: os.PathLike[str] | str | None = None,
    ) -> None:
        """Create an environment; nothing touches the filesystem until entered.

        Parameters
        ----------
        sources:
            Scripts sourced before the target command, in order. Plain paths
            are accepted and loaded in full.
        mocks:
            Command names to intercept.
        base_dir:
            Parent of the per-run temporary directory.
        config:
            Harness settings; defaults to :meth:`HarnessConfig.from_env`.
        extra_env:
            Variables added to the spawned shell's environment.
        cwd:
            Working directory of the spawned shell.
        """
        self.config = config if config is not None else HarnessConfig.from_env()
        self.sources: tuple[SourceUnit, ...] = tuple(
            unit if isinstance(unit, SourceUnit) else SourceUnit.execute(unit)
            for unit in sources
        )
        self.mocks: tuple[str, ...] = tuple(dict.fromkeys(mocks))
        self.base_dir = base_dir
        self.registry: MockRegistry | None = None
        self.invocation: ComposedInvocation | None = None
        self.result: RunResult | None = None
        self._runner = ScriptRunner(
            shell=self.config.shell, extra_env=extra_env, cwd=cwd
        )
        self._phase = Phase.IDLE

    @property
    def phase(self) -> Phase:
        """Return the current lifecycle phase."""
        return self._phase

    # ------------------------------------------------------------------
    # Context manager protocol
    # ------------------------------------------------------------------
    def __enter__(self) -> BashEnvironment:
        """Register the mocks and start their listeners."""
        if self.registry is not None:
            msg = "BashEnvironment cannot be entered twice"
            raise LifecycleError(msg)
        self.registry = MockRegistry.register(
            self.mocks, base_dir=self.base_dir, config=self.config
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: types.TracebackType | None,
    ) -> None:
        """Remove the channel directory whatever the outcome of the run."""
        if self.registry is not None:
            self.registry.__exit__(exc_type, exc, tb)

    def teardown(self) -> None:
        """Release the channel directory; equivalent to leaving the context."""
        self.__exit__(None, None, None)

    # ------------------------------------------------------------------
    # Running
    # ------------------------------------------------------------------
    def _require_phase(self, expected: Phase, action: str) -> None:
        if self._phase is not expected:
            msg = (
                f"Cannot call {action}(): not in '{expected.name.lower()}' phase "
                f"(current phase: {self._phase.name.lower()})"
            )
            raise LifecycleError(msg)

    def _require_registry(self, action: str) -> MockRegistry:
        registry = self.registry
        if registry is None:
            msg = f"{action}() called without entering the environment"
            raise LifecycleError(msg)
        if registry.torn_down:
            msg = f"{action}() called after teardown"
            raise LifecycleError(msg)
        return registry

    def compose(self, command: str, args: t.Iterable[str] = ()) -> ComposedInvocation:
        """Return the invocation :meth:`call_with_env` would run."""
        registry = self._require_registry("compose")
        return compose_invocation(
            registry.interception_fragment(), self.sources, command, args
        )

    def call_with_env(
        self, command: str, args: t.Iterable[str] = (), *, check: bool = True
    ) -> RunResult:
        """Run *command* with *args* after the mocks and source units.

        Each environment runs exactly once. The combined output is always
        available on the returned result, or on the raised error's ``result``.

        Raises
        ------
        LifecycleError
            If called outside the context or a second time.
        SpawnError
            If the shell cannot be started.
        ScriptFailureError
            If the script exits non-zero and *check* is true.
        ChannelError
            If a listener fails to drain its channel after the run.
        """
        self._require_phase(Phase.IDLE, "call_with_env")
        registry = self._require_registry("call_with_env")

        self._phase = Phase.COMPOSING
        self.invocation = compose_invocation(
            registry.interception_fragment(), self.sources, command, args
        )
        self._phase = Phase.SPAWNED
        try:
            self.result = self._runner.run(self.invocation)
        finally:
            self._phase = Phase.COMPLETED
        registry.sync()
        logger.debug(
            "Run of %s finished with status %d", command, self.result.exit_code
        )
        if check:
            self.result.check()
        return self.result

    # ------------------------------------------------------------------
    # Call log
    # ------------------------------------------------------------------
    def _registry_for_queries(self) -> MockRegistry:
        if self.registry is None:
            msg = "No mocks registered; enter the environment first"
            raise LifecycleError(msg)
        return self.registry

    def calls(self, name: str) -> tuple[ArgumentVector, ...]:
        """Return every vector recorded for *name*."""
        return self._registry_for_queries().calls(name)

    def call_count(self, name: str, args: t.Iterable[str] | None = None) -> int:
        """Return how often *name* was called, optionally with exactly *args*."""
        return self._registry_for_queries().call_count(name, args)

    def assert_called_with(self, name: str, expected_args: t.Iterable[str]) -> None:
        """Raise unless *name* was called with exactly *expected_args*."""
        self._registry_for_queries().assert_called_with(name, expected_args)

    def assert_called_times(
        self, name: str, expected_args: t.Iterable[str], times: int
    ) -> None:
        """Raise unless *name* was called with *expected_args* exactly *times*."""
        self._registry_for_queries().assert_called_times(name, expected_args, times)


def run(  # noqa: PLR0913
    command: str,
    args: t.Iterable[str] = (),
    sources: t.Iterable[SourceUnit] = (),
    mocks: t.Iterable[str] = (),
    *,
    base_dir: Path | str | None = None,
    config: HarnessConfig | None = None,
    extra_env: t.Mapping[str, str] | None = None,
    check: bool = True,
) -> BashEnvironment:
    """Run *command* once with *mocks* intercepted; return the finished environment.

    The temporary directory is already removed when this returns (or raises);
    the recorded calls and :attr:`BashEnvironment.result` stay queryable.
    """
    env = BashEnvironment(
        sources, mocks, base_dir=base_dir, config=config, extra_env=extra_env
    )
    with env:
        env.call_with_env(command, args, check=check)
    return env
