"""Render the bash text that shadows mocked commands with recording shims."""

from __future__ import annotations

import enum
import logging
import select
import shlex
import typing as t

from ._validators import validate_command_name
from .channel import RECORD_TERMINATOR

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    from pathlib import Path

logger = logging.getLogger(__name__)

ALIAS_SHIM_PREFIX: t.Final[str] = "__bash_mox_shim_"
EXPAND_ALIASES: t.Final[str] = "shopt -s expand_aliases"

# Appends up to PIPE_BUF bytes are atomic, so concurrent shims cannot
# interleave records that fit. 512 is the POSIX minimum for PIPE_BUF.
_PIPE_BUF: t.Final[int] = getattr(select, "PIPE_BUF", 512)
MAX_RECORD_BYTES: t.Final[int] = _PIPE_BUF - len(RECORD_TERMINATOR)

# ``printf -v`` builds the whole record in memory so the append below is a
# single write. ``LC_ALL=C`` makes ``${#...}`` count bytes. Field and record
# separators match ``bash_mox.channel``.
_SHIM_BODY: t.Final[str] = (
    "{{ local __bash_mox_record LC_ALL=C; "
    "builtin printf -v __bash_mox_record '%s\\037' {name} \"$@\"; "
    "if (( ${{#__bash_mox_record}} > {limit} )); then "
    "builtin printf 'bash-mox: %s call of %d bytes exceeds %d, not recorded\\n' "
    "{name} \"${{#__bash_mox_record}}\" {limit} >&2; return 1; fi; "
    "builtin printf '%s\\036\\n' \"$__bash_mox_record\" >> {fifo}; }}"
)


class InterceptMode(enum.StrEnum):
    """How mocked names are bound to their shims."""

    FUNCTION = "function"
    ALIAS = "alias"


def _shim_function(function_name: str, command: str, fifo: Path) -> str:
    body = _SHIM_BODY.format(
        name=shlex.quote(command),
        fifo=shlex.quote(str(fifo)),
        limit=MAX_RECORD_BYTES,
    )
    return f"{function_name}() {body}"


def _sorted_command_names(commands: t.Iterable[str]) -> list[str]:
    """Return *commands* sorted, rejecting names bash would need quoted."""
    names = sorted(commands)
    for name in names:
        validate_command_name(name)
    return names


def render_interception(
    channels: t.Mapping[str, Path],
    mode: InterceptMode = InterceptMode.FUNCTION,
) -> str:
    """Return the setup lines that route each command in *channels* to its FIFO.

    Parameters
    ----------
    channels:
        Mapping of command name to the FIFO its shim appends records to.
    mode:
        ``FUNCTION`` defines a shell function named after the command, which
        bash resolves before builtins and ``PATH`` lookups, including from
        inside other functions. ``ALIAS`` enables alias expansion and
        aliases the command to a uniquely named shim function; aliases are
        expanded when a line is read, so they only apply to lines read after
        the setup text (for example the bodies of sourced scripts).

    The returned text is newline-separated and must precede everything else
    in a composed invocation. A shim refuses a call whose record would exceed
    :data:`MAX_RECORD_BYTES`: it reports the size on stderr and returns 1
    without writing to its FIFO.
    """
    mode = InterceptMode(mode)
    names = _sorted_command_names(channels)
    if not names:
        return ""

    lines: list[str] = []
    if mode is InterceptMode.ALIAS:
        # Non-interactive shells don't expand aliases by default.
        lines.append(EXPAND_ALIASES)
        for name in names:
            shim = f"{ALIAS_SHIM_PREFIX}{name}"
            lines.append(_shim_function(shim, name, channels[name]))
            lines.append(f"alias {name}={shim}")
    else:
        lines.extend(_shim_function(name, name, channels[name]) for name in names)

    logger.debug("Rendered %s interception for %s", mode, ", ".join(names))
    return "\n".join(lines)
