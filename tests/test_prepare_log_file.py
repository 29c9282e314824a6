"""``prepare-log-file`` must chown the log it creates, without really chowning.

Ownership precedence: two explicit arguments win over ``LOG_OWNER_USER`` and
``LOG_OWNER_GROUP``, which win over the ``root`` default.
"""

from __future__ import annotations

import dataclasses as dc
import typing as t

import pytest

from bash_mox import SourceUnit
from tests.helpers import CONFIGURE_HELPER, write_env_file

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    from pathlib import Path

    from bash_mox.pytest_plugin import BashEnvFactory

pytestmark = pytest.mark.requires_bash


@dc.dataclass(frozen=True, slots=True)
class OwnerCase:
    """One row of the ownership table."""

    desc: str
    env: str
    args: tuple[str, ...]
    user: str
    group: str


_BASE_ENV = "readonly KUBE_HOME=${kube_home}\n"

CASES = [
    OwnerCase(
        "no args, LOG_OWNER_USER & LOG_OWNER_GROUP not set",
        _BASE_ENV,
        (),
        "root",
        "root",
    ),
    OwnerCase(
        "no args, LOG_OWNER_USER set, LOG_OWNER_GROUP not",
        _BASE_ENV + "LOG_OWNER_USER=test\n",
        (),
        "test",
        "root",
    ),
    OwnerCase(
        "no args, LOG_OWNER_USER not set, LOG_OWNER_GROUP set",
        _BASE_ENV + "LOG_OWNER_GROUP=test2\n",
        (),
        "root",
        "test2",
    ),
    OwnerCase(
        "one arg, LOG_OWNER_USER & LOG_OWNER_GROUP not set",
        _BASE_ENV,
        ("test",),
        "root",
        "root",
    ),
    OwnerCase(
        "one arg, LOG_OWNER_USER set, LOG_OWNER_GROUP not",
        _BASE_ENV + "LOG_OWNER_USER=testUser\n",
        ("test",),
        "testUser",
        "root",
    ),
    OwnerCase(
        "one arg, LOG_OWNER_USER not set, LOG_OWNER_GROUP set",
        _BASE_ENV + "LOG_OWNER_GROUP=testGroup\n",
        ("test",),
        "root",
        "testGroup",
    ),
    OwnerCase(
        "two args, LOG_OWNER_USER & LOG_OWNER_GROUP not set",
        _BASE_ENV,
        ("testUser", "testGroup"),
        "testUser",
        "testGroup",
    ),
    OwnerCase(
        "two args, LOG_OWNER_USER set, LOG_OWNER_GROUP not",
        _BASE_ENV + "LOG_OWNER_USER=testUser\n",
        ("testUser", "testGroup"),
        "testUser",
        "testGroup",
    ),
    OwnerCase(
        "two args, LOG_OWNER_USER not set, LOG_OWNER_GROUP set",
        _BASE_ENV + "LOG_OWNER_GROUP=test\n",
        ("testUser", "testGroup"),
        "testUser",
        "testGroup",
    ),
]


@pytest.mark.parametrize("case", CASES, ids=[case.desc for case in CASES])
def test_prepare_log_file(
    bash_env: BashEnvFactory, tmp_path: Path, case: OwnerCase
) -> None:
    """The log file exists and chown saw the expected owner."""
    kube_home = tmp_path / "kube-home"
    kube_home.mkdir()
    env_script = write_env_file(kube_home, case.env, {"kube_home": kube_home})
    log_file = kube_home / "plf_test.log"

    env = bash_env(
        [SourceUnit.execute(env_script), SourceUnit.declare_only(CONFIGURE_HELPER)],
        ["chown"],
        base_dir=kube_home,
    )
    env.call_with_env("prepare-log-file", [str(log_file), *case.args])

    assert log_file.exists(), f"Log file {log_file} not created"
    env.assert_called_with("chown", [f"{case.user}:{case.group}", str(log_file)])
    assert env.call_count("chown") == 1


def test_declare_only_skips_main(bash_env: BashEnvFactory, tmp_path: Path) -> None:
    """Loading the helper declare-only must not run its main entry point."""
    env_script = write_env_file(tmp_path, _BASE_ENV, {"kube_home": tmp_path})
    env = bash_env(
        [SourceUnit.execute(env_script), SourceUnit.declare_only(CONFIGURE_HELPER)],
        ["chown"],
    )

    env.call_with_env("true")

    assert not (tmp_path / "configured").exists()
    assert env.call_count("chown") == 0


def test_execute_runs_main(bash_env: BashEnvFactory, tmp_path: Path) -> None:
    """Sourcing the helper in full runs main, which prepares the kubelet log."""
    env_script = write_env_file(tmp_path, _BASE_ENV, {"kube_home": tmp_path})
    env = bash_env(
        [SourceUnit.execute(env_script), SourceUnit.execute(CONFIGURE_HELPER)],
        ["chown"],
    )

    env.call_with_env("true")

    assert (tmp_path / "configured").read_text(encoding="utf-8").strip() == (
        "configured"
    )
    env.assert_called_with("chown", ["root:root", str(tmp_path / "kubelet.log")])
