"""Scenario bookkeeping shared by the behavioural tests."""

from __future__ import annotations

import string
import textwrap
import typing as t
from pathlib import Path

if t.TYPE_CHECKING:  # pragma: no cover - types only
    import collections.abc as cabc

DATA_DIR = Path(__file__).resolve().parent / "data"
CONFIGURE_HELPER = DATA_DIR / "configure-helper.sh"
ENV_SCRIPT_NAME = "kube-env"


def write_env_file(
    directory: Path, template: str, values: cabc.Mapping[str, object]
) -> Path:
    """Render *template* with ``$name`` placeholders into ``directory/kube-env``.

    Indentation common to every line is removed so templates can be written
    inline in test tables.
    """
    rendered = string.Template(textwrap.dedent(template)).substitute(
        {key: str(value) for key, value in values.items()}
    )
    path = directory / ENV_SCRIPT_NAME
    path.write_text(rendered, encoding="utf-8")
    return path
