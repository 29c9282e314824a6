"""Record the external commands a bash procedure calls, without running them.

Mocked command names are shadowed by shell shims that write each call's
argument vector to a per-command named pipe; background listeners collect the
calls while the procedure runs in a fresh ``bash -c`` process, and tests then
assert on what was called.
"""

from __future__ import annotations

from .channel import InterceptChannel
from .command_runner import RunResult, ScriptRunner
from .composer import ComposedInvocation, LoadMode, SourceUnit, compose_invocation
from .config import HarnessConfig
from .controller import BashEnvironment, Phase, run
from .errors import (
    BashMoxError,
    CallAssertionError,
    CallCountError,
    ChannelError,
    LifecycleError,
    NeverCalledError,
    NoMatchError,
    NotMockedError,
    ScriptFailureError,
    SetupError,
    SpawnError,
)
from .platform import is_supported, skip_if_unsupported, unsupported_reason
from .recorder import ArgumentVector, CallRecorder
from .registry import MockRegistry
from .shimgen import InterceptMode

__all__ = [
    "ArgumentVector",
    "BashEnvironment",
    "BashMoxError",
    "CallAssertionError",
    "CallCountError",
    "CallRecorder",
    "ChannelError",
    "ComposedInvocation",
    "HarnessConfig",
    "InterceptChannel",
    "InterceptMode",
    "LifecycleError",
    "LoadMode",
    "MockRegistry",
    "NeverCalledError",
    "NoMatchError",
    "NotMockedError",
    "Phase",
    "RunResult",
    "ScriptFailureError",
    "ScriptRunner",
    "SetupError",
    "SourceUnit",
    "SpawnError",
    "compose_invocation",
    "is_supported",
    "run",
    "skip_if_unsupported",
    "unsupported_reason",
]
