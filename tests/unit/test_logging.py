"""Unit tests for femtologging integration helpers.

Run with:
    pytest tests/unit/test_logging.py
"""

from __future__ import annotations

import pytest

from lookout.logging import (
    format_log_message,
    log_debug,
    log_error,
    log_exception,
    log_info,
    log_warning,
    normalize_log_level,
)


class _FakeLogger:
    """Collects log calls for assertions."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, object | None, bool]] = []

    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> str:
        self.calls.append((level, message, exc_info, stack_info))
        return message


@pytest.mark.parametrize(
    ("raw", "expected", "invalid"),
    [
        ("debug", "DEBUG", False),
        (" Warning ", "WARNING", False),
        (None, "INFO", True),
        ("", "INFO", True),
        ("chatty", "INFO", True),
    ],
)
def test_normalize_log_level(raw: str | None, expected: str, invalid: bool) -> None:
    """Unknown or missing levels fall back to INFO and are flagged."""
    assert normalize_log_level(raw) == (expected, invalid)


def test_format_log_message_leaves_bare_templates_alone() -> None:
    """A template without arguments is returned verbatim, percent signs included."""
    assert format_log_message("100% done") == "100% done"
    assert format_log_message("%d checks", 3) == "3 checks"


@pytest.mark.parametrize(
    ("helper", "level"),
    [
        (log_info, "INFO"),
        (log_warning, "WARNING"),
        (log_error, "ERROR"),
    ],
)
def test_level_helpers_format_and_tag(helper: object, level: str) -> None:
    """Each helper pre-formats the message and emits its level."""
    logger = _FakeLogger()

    helper(logger, "branch=%s allowed=%s", "main", True)  # type: ignore[operator]

    assert logger.calls == [(level, "branch=main allowed=True", None, False)]


def test_log_debug_emits_debug() -> None:
    """log_debug emits at DEBUG level."""
    logger = _FakeLogger()

    log_debug(logger, "checks=%d", 2)

    assert logger.calls == [("DEBUG", "checks=2", None, False)]


def test_log_exception_attaches_exc_info() -> None:
    """log_exception passes the exception through as exc_info."""
    logger = _FakeLogger()
    error = RuntimeError("boom")

    log_exception(logger, "delivery failed", error)

    assert logger.calls == [("ERROR", "delivery failed", error, False)]
