"""Behavioural tests for BashEnvironment using pytest-bdd."""

from __future__ import annotations

from pathlib import Path

import pytest
from pytest_bdd import scenario

from tests.steps.bash_environment import *  # noqa: F403

FEATURES_DIR = Path(__file__).resolve().parent.parent / "features"
FEATURE = str(FEATURES_DIR / "bash_environment.feature")

pytestmark = pytest.mark.requires_bash


@scenario(FEATURE, "prepare-log-file chowns with the default owner")
def test_prepare_log_file_default_owner() -> None:
    """The helper chowns to root:root when nothing else is configured."""


@scenario(FEATURE, "explicit owner arguments override the environment")
def test_explicit_owner_wins() -> None:
    """Two owner arguments take precedence over LOG_OWNER_USER."""


@scenario(FEATURE, "a mocked command that is never reached")
def test_never_called_failure() -> None:
    """Silent mocks fail assertions as never called."""


@scenario(FEATURE, "a call with other arguments does not match")
def test_no_match_failure() -> None:
    """Recorded calls with other arguments fail assertions as no match."""


@scenario(FEATURE, "a failing procedure reports its output")
def test_failing_procedure() -> None:
    """Non-zero exits are reported and the FIFOs are still cleaned up."""
