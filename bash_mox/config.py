"""Harness configuration and the environment variables that override it."""

from __future__ import annotations

import dataclasses as dc
import os
import typing as t

from ._validators import validate_positive_finite_timeout
from .shimgen import InterceptMode

BASH_MOX_SHELL_ENV: t.Final[str] = "BASH_MOX_SHELL"
BASH_MOX_SYNC_TIMEOUT_ENV: t.Final[str] = "BASH_MOX_SYNC_TIMEOUT"
BASH_MOX_INTERCEPT_MODE_ENV: t.Final[str] = "BASH_MOX_INTERCEPT_MODE"

DEFAULT_SHELL: t.Final[str] = "bash"
DEFAULT_SYNC_TIMEOUT: t.Final[float] = 5.0
DEFAULT_DIR_PREFIX: t.Final[str] = "pipes"


def parse_timeout(raw: str | float, *, source: str = "timeout") -> float:
    """Return *raw* as a validated positive, finite float."""
    try:
        value = float(raw)
    except (TypeError, ValueError) as exc:
        msg = f"{source}: invalid timeout: {raw!r}"
        raise ValueError(msg) from exc
    validate_positive_finite_timeout(value)
    return value


def parse_intercept_mode(raw: str | InterceptMode) -> InterceptMode:
    """Return the :class:`InterceptMode` named by *raw* (case-insensitive)."""
    try:
        return InterceptMode(str(raw).strip().lower())
    except ValueError as exc:
        choices = ", ".join(mode.value for mode in InterceptMode)
        msg = f"Unknown intercept mode {raw!r}; expected one of: {choices}"
        raise ValueError(msg) from exc


@dc.dataclass(frozen=True, slots=True)
class HarnessConfig:
    """Settings shared by every run of a :class:`~bash_mox.BashEnvironment`.

    Attributes
    ----------
    shell : str
        Interpreter used to execute the composed invocation with ``-c``.
    sync_timeout : float
        Seconds to wait for listeners to drain after a run, and for them to
        stop during teardown.
    intercept_mode : InterceptMode
        How mocked commands are bound to their shims.
    dir_prefix : str
        Prefix of the per-run temporary directory holding the FIFOs.
    """

    shell: str = DEFAULT_SHELL
    sync_timeout: float = DEFAULT_SYNC_TIMEOUT
    intercept_mode: InterceptMode = InterceptMode.FUNCTION
    dir_prefix: str = DEFAULT_DIR_PREFIX

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if not self.shell:
            msg = "shell must not be empty"
            raise ValueError(msg)
        validate_positive_finite_timeout(self.sync_timeout)
        if not isinstance(self.intercept_mode, InterceptMode):
            object.__setattr__(
                self, "intercept_mode", parse_intercept_mode(self.intercept_mode)
            )

    @classmethod
    def from_env(cls, environ: t.Mapping[str, str] | None = None) -> HarnessConfig:
        """Build a config from ``BASH_MOX_*`` variables, defaulting the rest."""
        env = os.environ if environ is None else environ
        kwargs: dict[str, t.Any] = {}
        if shell := env.get(BASH_MOX_SHELL_ENV):
            kwargs["shell"] = shell
        if timeout := env.get(BASH_MOX_SYNC_TIMEOUT_ENV):
            kwargs["sync_timeout"] = parse_timeout(
                timeout, source=BASH_MOX_SYNC_TIMEOUT_ENV
            )
        if mode := env.get(BASH_MOX_INTERCEPT_MODE_ENV):
            kwargs["intercept_mode"] = parse_intercept_mode(mode)
        return cls(**kwargs)

    def replace(self, **changes: t.Any) -> HarnessConfig:
        """Return a copy with *changes* applied."""
        return dc.replace(self, **changes)
