"""Unit tests for pipeline observability."""

from __future__ import annotations

import httpx
import pytest

from lookout import observability
from lookout.commands import ExecutableNotFoundError
from lookout.errors import (
    ChangedFilesError,
    ConfigValidationError,
    DispatchConfigError,
    DispatchError,
)
from lookout.observability import (
    ErrorCategory,
    PipelineEventLogger,
    PipelineEventType,
    categorize_error,
)
from lookout.validation import CheckResult, CheckStatus


class _FakeLogger:
    """Collects log calls for assertions."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, object | None]] = []

    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> str:
        del stack_info
        self.calls.append((level, message, exc_info))
        return message


@pytest.fixture
def fake_logger(monkeypatch: pytest.MonkeyPatch) -> _FakeLogger:
    fake = _FakeLogger()
    monkeypatch.setattr(observability, "logger", fake)
    return fake


class TestCategorizeError:
    """Tests for error categorization."""

    def test_dispatch_5xx_is_transient(self) -> None:
        """Server errors from the dispatch API are transient."""
        exc = DispatchError.http_error(502, "Bad gateway")
        assert categorize_error(exc) == ErrorCategory.TRANSIENT

    def test_dispatch_4xx_is_client_error(self) -> None:
        """Rejected credentials are client errors."""
        exc = DispatchError.http_error(401, "Bad credentials")
        assert categorize_error(exc) == ErrorCategory.CLIENT_ERROR

    def test_unreachable_target_is_transport(self) -> None:
        """Failures without a status code are transport failures."""
        exc = DispatchError.transport(httpx.ConnectError("refused"))
        assert categorize_error(exc) == ErrorCategory.TRANSPORT

    @pytest.mark.parametrize(
        "exc",
        [
            DispatchConfigError.missing_token(),
            ConfigValidationError(["branches must list at least one branch"]),
        ],
    )
    def test_configuration_errors(self, exc: Exception) -> None:
        """Credential and config problems are configuration errors."""
        assert categorize_error(exc) == ErrorCategory.CONFIGURATION

    @pytest.mark.parametrize(
        "exc",
        [
            ChangedFilesError(["git", "diff"], 128, "fatal: bad object"),
            ExecutableNotFoundError("git"),
        ],
    )
    def test_git_failures(self, exc: Exception) -> None:
        """Changed-file lookup failures are git errors."""
        assert categorize_error(exc) == ErrorCategory.GIT

    def test_unknown_exception_is_unknown(self) -> None:
        """Unknown exception types default to unknown category."""
        assert categorize_error(ValueError("boom")) == ErrorCategory.UNKNOWN


class TestPipelineEventLogger:
    """Tests for the PipelineEventLogger structured logging."""

    def test_findings_are_logged_as_warnings(self, fake_logger: _FakeLogger) -> None:
        PipelineEventLogger().log_check(
            CheckResult(name="yamllint", status=CheckStatus.FINDINGS, returncode=1)
        )

        level, message, _ = fake_logger.calls[0]
        assert level == "WARNING"
        assert PipelineEventType.CHECK_FINISHED in message
        assert "check=yamllint" in message

    def test_passing_checks_are_logged_as_info(self, fake_logger: _FakeLogger) -> None:
        PipelineEventLogger().log_check(
            CheckResult(name="ansible-lint", status=CheckStatus.PASSED, returncode=0)
        )

        assert fake_logger.calls[0][0] == "INFO"

    def test_gate_decision_event(self, fake_logger: _FakeLogger) -> None:
        events = PipelineEventLogger()
        events.log_gate("main", allowed=True)
        events.log_gate("feature/x", allowed=False)

        messages = [message for _, message, _ in fake_logger.calls]
        assert PipelineEventType.GATE_PASSED in messages[0]
        assert PipelineEventType.GATE_SKIPPED in messages[1]
        assert "branch=feature/x" in messages[1]

    def test_dispatch_failure_includes_category(
        self, fake_logger: _FakeLogger
    ) -> None:
        error = DispatchError.http_error(404, "Not Found")

        PipelineEventLogger().log_dispatch_failed(error)

        level, message, exc_info = fake_logger.calls[0]
        assert level == "ERROR"
        assert "error_category=client_error" in message
        assert "error_type=DispatchError" in message
        assert exc_info is error
