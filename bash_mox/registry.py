"""Registry of mocked commands, their channels and their call logs."""

from __future__ import annotations

import logging
import tempfile
import typing as t
from pathlib import Path

from ._validators import validate_command_name
from .channel import InterceptChannel
from .config import HarnessConfig
from .errors import NotMockedError, SetupError
from .fs_utils import remove_tree
from .shimgen import render_interception
from .verifiers import CallCountVerifier, CallVerifier

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    import types

    from .recorder import ArgumentVector, CallRecorder

logger = logging.getLogger(__name__)


class MockRegistry:
    """Own the per-run temporary directory and one channel per mocked command.

    Build instances with :meth:`register`, which creates every FIFO and starts
    every listener before returning. The registry is a context manager; leaving
    the ``with`` block calls :meth:`teardown`.
    """

    def __init__(self, directory: Path, config: HarnessConfig) -> None:
        self.directory = directory
        self.config = config
        self._channels: dict[str, InterceptChannel] = {}
        self._torn_down = False

    @classmethod
    def register(
        cls,
        names: t.Iterable[str],
        *,
        base_dir: Path | str | None = None,
        config: HarnessConfig | None = None,
    ) -> MockRegistry:
        """Create channels for *names* and start their listeners.

        Parameters
        ----------
        names:
            Commands to intercept. Duplicates are collapsed.
        base_dir:
            Directory in which the per-run temporary directory is created.
            Defaults to the system temporary directory.
        config:
            Harness settings; defaults to :meth:`HarnessConfig.from_env`.

        Raises
        ------
        ValueError
            If a name cannot be used as a bash function or alias name.
        SetupError
            If the temporary directory or a FIFO cannot be created. Anything
            created before the failure is removed first.
        """
        unique = list(dict.fromkeys(names))
        for name in unique:
            validate_command_name(name)
        cfg = config if config is not None else HarnessConfig.from_env()

        try:
            directory = Path(
                tempfile.mkdtemp(
                    prefix=cfg.dir_prefix,
                    dir=None if base_dir is None else str(base_dir),
                )
            )
        except OSError as exc:
            msg = f"Cannot create channel directory under {base_dir}: {exc}"
            raise SetupError(msg) from exc

        registry = cls(directory, cfg)
        try:
            registry._open_channels(unique)
        except (OSError, RuntimeError) as exc:
            registry._teardown_after_setup_error()
            msg = f"Cannot create intercept channels in {directory}: {exc}"
            raise SetupError(msg) from exc
        except BaseException:
            registry._teardown_after_setup_error()
            raise
        return registry

    def _open_channels(self, names: list[str]) -> None:
        for name in names:
            channel = InterceptChannel(name, self.directory / name)
            channel.create()
            self._channels[name] = channel
        for channel in self._channels.values():
            channel.start()
        logger.debug(
            "Registered mocks %s in %s", ", ".join(names) or "(none)", self.directory
        )

    def _teardown_after_setup_error(self) -> None:
        try:
            self.teardown()
        except OSError:
            logger.exception("Cleanup after failed setup of %s failed", self.directory)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def commands(self) -> tuple[str, ...]:
        """Return the registered command names in sorted order."""
        return tuple(sorted(self._channels))

    @property
    def recorders(self) -> dict[str, CallRecorder]:
        """Return the call recorder of each registered command."""
        return {name: ch.recorder for name, ch in self._channels.items()}

    @property
    def torn_down(self) -> bool:
        """Return ``True`` once :meth:`teardown` has run."""
        return self._torn_down

    def channel(self, name: str) -> InterceptChannel:
        """Return the channel for *name*, raising ``NotMockedError`` if absent."""
        channel = self._channels.get(name)
        if channel is None:
            msg = f"Command {name!r} is not mocked"
            raise NotMockedError(msg, command=name, expected=(name,))
        return channel

    def calls(self, name: str) -> tuple[ArgumentVector, ...]:
        """Return every vector recorded for *name*."""
        return self.channel(name).recorder.calls

    def call_count(self, name: str, args: t.Iterable[str] | None = None) -> int:
        """Return how often *name* was called, optionally with exactly *args*."""
        recorder = self.channel(name).recorder
        if args is None:
            return len(recorder)
        return recorder.count((name, *args))

    def interception_fragment(self) -> str:
        """Return the setup text that routes each mocked command to its FIFO."""
        return render_interception(
            {name: ch.path for name, ch in self._channels.items()},
            self.config.intercept_mode,
        )

    # ------------------------------------------------------------------
    # Assertions
    # ------------------------------------------------------------------
    def assert_called_with(self, name: str, expected_args: t.Iterable[str]) -> None:
        """Raise unless *name* was called with exactly *expected_args*."""
        CallVerifier(self.recorders).verify(name, expected_args)

    def assert_called_times(
        self, name: str, expected_args: t.Iterable[str], times: int
    ) -> None:
        """Raise unless *name* was called with *expected_args* exactly *times*."""
        CallCountVerifier(self.recorders).verify(name, expected_args, times)

    # ------------------------------------------------------------------
    # Synchronisation and teardown
    # ------------------------------------------------------------------
    def sync(self, timeout: float | None = None) -> None:
        """Wait until every listener has stored all records written so far."""
        effective = self.config.sync_timeout if timeout is None else timeout
        for channel in self._channels.values():
            channel.sync(effective)

    def teardown(self) -> None:
        """Stop all listeners and remove the temporary directory.

        Safe to call repeatedly and while listeners are still blocked waiting
        for a writer: they are woken and joined with a bounded timeout, and a
        listener that cannot be stopped is left behind as a daemon thread
        rather than blocking teardown.
        """
        if self._torn_down:
            return
        self._torn_down = True
        for channel in self._channels.values():
            channel.close(self.config.sync_timeout)
        remove_tree(self.directory)

    def __enter__(self) -> MockRegistry:
        """Return the already started registry."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: types.TracebackType | None,
    ) -> None:
        """Tear down; cleanup errors only propagate when nothing else is."""
        try:
            self.teardown()
        except OSError:
            if exc_type is None:
                raise
            logger.exception("Teardown of %s failed", self.directory)

    def __repr__(self) -> str:
        return (
            f"MockRegistry(directory={str(self.directory)!r}, "
            f"commands={self.commands!r})"
        )
