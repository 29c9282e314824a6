"""Global test configuration and shared fixtures."""

from __future__ import annotations

import pytest

from bash_mox.platform import fifo_unsupported_reason, shell_unsupported_reason

pytest_plugins = ("pytester",)

_FIFO_SKIP_REASON: str | None = None


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers and cache platform capability checks."""
    global _FIFO_SKIP_REASON
    config.addinivalue_line(
        "markers",
        "requires_fifo: mark test as requiring POSIX named pipe support",
    )
    config.addinivalue_line(
        "markers",
        "requires_bash: mark test as needing a bash interpreter on PATH",
    )
    _FIFO_SKIP_REASON = fifo_unsupported_reason()


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    """Skip tests whose platform requirements are not met."""
    bash_reason = shell_unsupported_reason("bash")
    for item in items:
        needs_bash = "requires_bash" in item.keywords
        if _FIFO_SKIP_REASON and ("requires_fifo" in item.keywords or needs_bash):
            item.add_marker(pytest.mark.skip(reason=_FIFO_SKIP_REASON))
        elif bash_reason and needs_bash:
            item.add_marker(pytest.mark.skip(reason=bash_reason))
