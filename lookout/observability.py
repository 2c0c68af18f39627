"""Structured log events for pipeline runs.

Each milestone is logged with a ``[pipeline.*]`` tag followed by
``key=value`` pairs so CI log search can pick them out. The dispatch
credential is never part of any event.
"""

from __future__ import annotations

import enum
import typing as typ

from .commands import ExecutableNotFoundError
from .errors import (
    ChangedFilesError,
    DispatchConfigError,
    DispatchError,
    LookoutConfigError,
)
from .logging import get_logger, log_error, log_info, log_warning

if typ.TYPE_CHECKING:
    from .dispatch import DispatchReceipt
    from .record import NotificationRecord
    from .trigger import TriggerContext
    from .validation import CheckResult, ValidationReport

logger = get_logger(__name__)

_HTTP_SERVER_ERROR_THRESHOLD = 500


class PipelineEventType(enum.StrEnum):
    """Structured log event types for pipeline observability."""

    RUN_STARTED = "pipeline.run.started"
    CHECK_FINISHED = "pipeline.validation.check"
    VALIDATION_COMPLETED = "pipeline.validation.completed"
    GATE_PASSED = "pipeline.gate.passed"
    GATE_SKIPPED = "pipeline.gate.skipped"
    DISPATCH_SENT = "pipeline.dispatch.sent"
    DISPATCH_FAILED = "pipeline.dispatch.failed"


class ErrorCategory(enum.StrEnum):
    """Categories for classifying fatal delivery failures."""

    TRANSIENT = "transient"
    CLIENT_ERROR = "client_error"
    TRANSPORT = "transport"
    CONFIGURATION = "configuration"
    GIT = "git"
    UNKNOWN = "unknown"


_EXCEPTION_CATEGORY_MAP: tuple[tuple[type[BaseException], ErrorCategory], ...] = (
    (DispatchConfigError, ErrorCategory.CONFIGURATION),
    (LookoutConfigError, ErrorCategory.CONFIGURATION),
    (ChangedFilesError, ErrorCategory.GIT),
    (ExecutableNotFoundError, ErrorCategory.GIT),
)


def categorize_error(exc: BaseException) -> ErrorCategory:
    """Categorize a notification-stage failure for alert routing."""
    if isinstance(exc, DispatchError):
        if exc.status_code is None:
            return ErrorCategory.TRANSPORT
        if exc.status_code >= _HTTP_SERVER_ERROR_THRESHOLD:
            return ErrorCategory.TRANSIENT
        return ErrorCategory.CLIENT_ERROR

    for exc_type, category in _EXCEPTION_CATEGORY_MAP:
        if isinstance(exc, exc_type):
            return category

    return ErrorCategory.UNKNOWN


class PipelineEventLogger:
    """Emit structured pipeline events via femtologging.

    Findings are WARNING, milestones INFO and delivery failures ERROR.
    """

    def log_run_started(self, context: TriggerContext) -> None:
        """Log the trigger that started the run."""
        log_info(
            logger,
            "[%s] repository=%s branch=%s sha=%s actor=%s event=%s",
            PipelineEventType.RUN_STARTED,
            context.repository,
            context.branch,
            context.sha,
            context.actor,
            context.kind,
        )

    def log_check(self, result: CheckResult) -> None:
        """Log a single check outcome."""
        log = log_warning if result.has_findings else log_info
        log(
            logger,
            "[%s] check=%s status=%s returncode=%s",
            PipelineEventType.CHECK_FINISHED,
            result.name,
            result.status,
            result.returncode,
        )

    def log_validation_completed(self, report: ValidationReport) -> None:
        """Log the validation stage totals."""
        log_info(
            logger,
            "[%s] checks=%d findings=%d",
            PipelineEventType.VALIDATION_COMPLETED,
            len(report.results),
            len(report.findings),
        )

    def log_gate(self, branch: str, *, allowed: bool) -> None:
        """Log the branch gate decision."""
        event = (
            PipelineEventType.GATE_PASSED if allowed else PipelineEventType.GATE_SKIPPED
        )
        log_info(logger, "[%s] branch=%s", event, branch)

    def log_dispatch_sent(
        self, record: NotificationRecord, receipt: DispatchReceipt
    ) -> None:
        """Log an accepted delivery."""
        log_info(
            logger,
            "[%s] target=%s event_type=%s status_code=%d changed_files=%d",
            PipelineEventType.DISPATCH_SENT,
            receipt.repository,
            receipt.event_type,
            receipt.status_code,
            len(record.changed_files),
        )

    def log_dispatch_failed(self, error: BaseException) -> None:
        """Log a fatal notification-stage failure with its category."""
        log_error(
            logger,
            "[%s] error_type=%s error_category=%s error_message=%s",
            PipelineEventType.DISPATCH_FAILED,
            type(error).__name__,
            categorize_error(error),
            str(error),
            exc_info=error,
        )
