"""Validate-then-notify pipeline.

The run always executes the validation stage first. Its findings are
diagnostic only. The branch gate then decides whether the notification stage
runs; when it does, a delivery failure is fatal and propagates to the caller
after it has been logged and written to the summary.
"""

from __future__ import annotations

import dataclasses
import enum
import typing as typ

from .changes import list_changed_files
from .commands import run_command
from .dispatch import DispatchConfig, RepositoryDispatcher
from .gate import is_allowed_branch
from .observability import PipelineEventLogger
from .paths import WatchedPaths
from .record import build_record
from .summary import (
    MemorySummarySink,
    render_delivery_markdown,
    render_failure_markdown,
    render_gate_markdown,
    render_validation_markdown,
)
from .validation import run_validation

if typ.TYPE_CHECKING:
    from .commands import CommandRunner
    from .config import LookoutConfig
    from .dispatch import DispatchReceipt, Dispatcher
    from .record import NotificationRecord
    from .summary import SummarySink
    from .trigger import TriggerContext
    from .validation import ValidationReport


class PipelineState(enum.StrEnum):
    """Terminal state of a completed run."""

    SKIPPED = "skipped"
    NOTIFIED = "notified"


@dataclasses.dataclass(frozen=True, slots=True)
class PipelineResult:
    """Everything a completed run produced."""

    context: TriggerContext
    allowed: bool
    validation: ValidationReport | None = None
    record: NotificationRecord | None = None
    receipt: DispatchReceipt | None = None

    @property
    def state(self) -> PipelineState:
        """Return the terminal state of the run."""
        if self.receipt is not None:
            return PipelineState.NOTIFIED
        return PipelineState.SKIPPED


@dataclasses.dataclass(slots=True)
class PipelineDependencies:
    """Collaborators a run needs, with production defaults."""

    runner: CommandRunner = run_command
    dispatcher: Dispatcher | None = None
    environ: typ.Mapping[str, str] | None = None
    sink: SummarySink = dataclasses.field(default_factory=MemorySummarySink)
    events: PipelineEventLogger = dataclasses.field(
        default_factory=PipelineEventLogger
    )


def run_validation_stage(
    config: LookoutConfig, deps: PipelineDependencies
) -> ValidationReport:
    """Run the validation stage and summarise it; never raises on findings."""
    report = run_validation(
        config.validation, runner=deps.runner, on_result=deps.events.log_check
    )
    deps.events.log_validation_completed(report)
    deps.sink.write(render_validation_markdown(report))
    return report


async def run_notification_stage(
    context: TriggerContext,
    config: LookoutConfig,
    deps: PipelineDependencies,
) -> tuple[NotificationRecord, DispatchReceipt]:
    """Look up changed files, build the record and deliver it exactly once.

    Raises
    ------
    LookoutError
        Any failure in lookup or delivery, after logging and summarising it.

    """
    dispatcher = deps.dispatcher
    owns_dispatcher = dispatcher is None
    try:
        # Target and credential are resolved before any git lookup.
        if dispatcher is None:
            dispatcher = RepositoryDispatcher(
                DispatchConfig.from_settings(config.dispatch, deps.environ)
            )
        changed = list_changed_files(
            context,
            WatchedPaths.from_patterns(config.watched_paths),
            cwd=config.validation.root_path,
            runner=deps.runner,
        )
        record = build_record(context, changed)
        receipt = await dispatcher.dispatch(record)
    except Exception as exc:
        deps.events.log_dispatch_failed(exc)
        deps.sink.write(render_failure_markdown(exc))
        raise
    finally:
        if owns_dispatcher and dispatcher is not None:
            await dispatcher.aclose()

    deps.events.log_dispatch_sent(record, receipt)
    deps.sink.write(render_delivery_markdown(record, receipt))
    return record, receipt


async def run_pipeline(
    context: TriggerContext,
    config: LookoutConfig,
    deps: PipelineDependencies | None = None,
    *,
    validate: bool = True,
) -> PipelineResult:
    """Run validate, gate and notify in order.

    Parameters
    ----------
    context : TriggerContext
        The change that started the run.
    config : LookoutConfig
        Watched paths, branch allow-list, checks and dispatch target.
    deps : PipelineDependencies | None, optional
        Runner, dispatcher, summary sink and event logger overrides.
    validate : bool, optional
        Run the validation stage first. ``False`` is used by the ``notify``
        command, which gates and notifies only.

    Returns
    -------
    PipelineResult
        The report, gate decision and, on notification, the record and receipt.

    """
    deps = deps or PipelineDependencies()
    deps.events.log_run_started(context)

    report = run_validation_stage(config, deps) if validate else None

    allowed = is_allowed_branch(context.branch, config.allowed_branches)
    deps.events.log_gate(context.branch, allowed=allowed)
    deps.sink.write(render_gate_markdown(context.branch, allowed=allowed))
    if not allowed:
        return PipelineResult(context=context, allowed=False, validation=report)

    record, receipt = await run_notification_stage(context, config, deps)
    return PipelineResult(
        context=context,
        allowed=True,
        validation=report,
        record=record,
        receipt=receipt,
    )
