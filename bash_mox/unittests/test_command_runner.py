"""Unit tests for :mod:`bash_mox.command_runner`."""

from __future__ import annotations

import logging
import subprocess
import typing as t

import pytest

from bash_mox.command_runner import RunResult, ScriptRunner, prepare_environment
from bash_mox.composer import compose_invocation
from bash_mox.errors import ScriptFailureError, SpawnError

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    from pathlib import Path


def test_run_result_check_passes_on_success() -> None:
    """A zero exit status checks out."""
    result = RunResult(b"ok\n", 0, "true")
    assert result.succeeded
    assert result.check() is result
    assert result.text == "ok\n"


def test_run_result_check_raises_with_output() -> None:
    """A failing result raises with the status, command and output."""
    result = RunResult(b"boom\n", 3, "false")
    with pytest.raises(ScriptFailureError) as excinfo:
        result.check()

    assert excinfo.value.result is result
    message = str(excinfo.value)
    assert "status 3" in message
    assert "false" in message
    assert "boom" in message


def test_run_result_text_replaces_invalid_bytes() -> None:
    """Undecodable output is still printable."""
    assert RunResult(b"\xff", 0, "x").text == "�"


def test_prepare_environment_overlays(monkeypatch: pytest.MonkeyPatch) -> None:
    """Extra variables override the inherited environment."""
    monkeypatch.setenv("BASH_MOX_TEST_VAR", "outer")
    env = prepare_environment({"BASH_MOX_TEST_VAR": "inner", "OTHER": "1"})
    assert env["BASH_MOX_TEST_VAR"] == "inner"
    assert env["OTHER"] == "1"
    assert prepare_environment(None)["BASH_MOX_TEST_VAR"] == "outer"


def test_missing_shell_raises_spawn_error(tmp_path: Path) -> None:
    """A shell that does not exist cannot be spawned."""
    runner = ScriptRunner(shell=str(tmp_path / "no-such-shell"))
    with pytest.raises(SpawnError, match="not found") as excinfo:
        runner.run("true")
    assert excinfo.value.shell == str(tmp_path / "no-such-shell")


def test_non_executable_shell_raises_spawn_error(tmp_path: Path) -> None:
    """A shell without execute permission cannot be spawned."""
    shell = tmp_path / "shell"
    shell.write_text("#!/bin/sh\n", encoding="utf-8")
    shell.chmod(0o644)
    runner = ScriptRunner(shell=str(shell))
    with pytest.raises(SpawnError):
        runner.run("true")


def test_other_os_errors_become_spawn_error(monkeypatch: pytest.MonkeyPatch) -> None:
    """Unexpected spawn failures are wrapped too."""

    def boom(*_args: object, **_kwargs: object) -> t.NoReturn:
        raise OSError("resource exhausted")

    monkeypatch.setattr(subprocess, "run", boom)
    with pytest.raises(SpawnError, match="execution failed"):
        ScriptRunner().run("true")


@pytest.mark.requires_bash
def test_run_combines_stdout_and_stderr() -> None:
    """Both streams land in one output buffer."""
    result = ScriptRunner().run("echo out; echo err >&2")
    assert result.exit_code == 0
    assert result.output.splitlines() == [b"out", b"err"]


@pytest.mark.requires_bash
def test_run_reports_exit_status(caplog: pytest.LogCaptureFixture) -> None:
    """Non-zero exits are returned and logged, not raised."""
    with caplog.at_level(logging.ERROR, logger="bash_mox.command_runner"):
        result = ScriptRunner().run("echo failing; exit 7")
    assert result.exit_code == 7
    assert not result.succeeded
    assert "status 7" in caplog.text
    assert "failing" in caplog.text


@pytest.mark.requires_bash
def test_run_accepts_composed_invocation_and_env(tmp_path: Path) -> None:
    """Composed invocations run with extra variables and a working directory."""
    invocation = compose_invocation("", [], "printf", ["%s:%s", "$GREETING", "x"])
    runner = ScriptRunner(extra_env={"GREETING": "hi"}, cwd=tmp_path)
    result = runner.run(invocation)
    # Arguments are quoted, so the variable is not expanded.
    assert result.output == b"$GREETING:x"
    assert result.command_line == invocation.command_line

    expanded = runner.run("printf '%s\\n' \"$GREETING\"; pwd -P")
    assert expanded.output.decode().splitlines() == ["hi", str(tmp_path.resolve())]
