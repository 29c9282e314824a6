"""Pytest plugin providing the ``bash_env`` fixture."""

from __future__ import annotations

import logging
import typing as t

import pytest

from .config import (
    HarnessConfig,
    parse_intercept_mode,
    parse_timeout,
)
from .controller import BashEnvironment
from .platform import skip_if_unsupported

if t.TYPE_CHECKING:
    from pathlib import Path

    from .composer import SourceUnit

logger = logging.getLogger(__name__)


class BashEnvFactory(t.Protocol):
    """Callable returned by the ``bash_env`` fixture."""

    def __call__(
        self,
        sources: t.Iterable[SourceUnit] = (),
        mocks: t.Iterable[str] = (),
        *,
        base_dir: Path | str | None = None,
        extra_env: t.Mapping[str, str] | None = None,
    ) -> BashEnvironment:
        """Create and enter a :class:`BashEnvironment`."""
        ...


def pytest_addoption(parser: pytest.Parser) -> None:
    """Register command-line and ini options for the plugin."""
    group = parser.getgroup("bash_mox")
    group.addoption(
        "--bash-mox-shell",
        action="store",
        dest="bash_mox_shell",
        default=None,
        help="Interpreter used to run composed invocations. Overrides the ini.",
    )
    parser.addini(
        "bash_mox_shell",
        "Interpreter used to run composed invocations (default: bash).",
        default=None,
    )
    parser.addini(
        "bash_mox_sync_timeout",
        "Seconds to wait for call listeners to drain after each run.",
        default=None,
    )
    parser.addini(
        "bash_mox_intercept_mode",
        "How mocked commands are shadowed: 'function' or 'alias'.",
        default=None,
    )


def _resolve_config(config: pytest.Config) -> HarnessConfig:
    """Build a :class:`HarnessConfig`; priority is CLI > ini > environment."""
    harness = HarnessConfig.from_env()
    changes: dict[str, t.Any] = {}

    shell = config.getoption("bash_mox_shell") or config.getini("bash_mox_shell")
    if shell:
        changes["shell"] = str(shell)
    if timeout := config.getini("bash_mox_sync_timeout"):
        changes["sync_timeout"] = parse_timeout(
            timeout, source="bash_mox_sync_timeout"
        )
    if mode := config.getini("bash_mox_intercept_mode"):
        changes["intercept_mode"] = parse_intercept_mode(mode)
    return harness.replace(**changes) if changes else harness


@pytest.fixture
def bash_env(
    request: pytest.FixtureRequest, tmp_path: Path
) -> t.Generator[BashEnvFactory, None, None]:
    """Yield a factory of entered :class:`BashEnvironment` objects.

    Channel directories default to the test's ``tmp_path``. Every environment
    created through the factory is torn down when the test finishes. The test
    is skipped when named pipes or the configured shell are unavailable.
    """
    harness = _resolve_config(request.config)
    skip_if_unsupported(shell=harness.shell)
    created: list[BashEnvironment] = []

    def factory(
        sources: t.Iterable[SourceUnit] = (),
        mocks: t.Iterable[str] = (),
        *,
        base_dir: Path | str | None = None,
        extra_env: t.Mapping[str, str] | None = None,
    ) -> BashEnvironment:
        env = BashEnvironment(
            sources,
            mocks,
            base_dir=tmp_path if base_dir is None else base_dir,
            config=harness,
            extra_env=extra_env,
        )
        env.__enter__()
        created.append(env)
        return env

    try:
        yield factory
    finally:
        _teardown_environments(created)


def _teardown_environments(created: list[BashEnvironment]) -> None:
    """Tear down every environment, failing the test if any cleanup fails."""
    failed = False
    for env in reversed(created):
        try:
            env.teardown()
        except Exception:
            logger.exception("Error during bash_env fixture cleanup")
            failed = True
    if failed:
        pytest.fail("bash_env fixture cleanup failed")
