"""Behavioural tests for the validate-then-notify pipeline."""
# ruff: noqa: D103

from __future__ import annotations

import asyncio
import typing as typ

import pytest
from pytest_bdd import given, parsers, scenario, then, when

from lookout.config import LookoutConfig, ValidationSettings
from lookout.errors import DispatchConfigError
from lookout.pipeline import PipelineDependencies, PipelineResult, run_pipeline
from lookout.summary import MemorySummarySink
from tests.helpers import RecordingDispatcher, failing_checks_runner, make_context

if typ.TYPE_CHECKING:
    from pathlib import Path

    from lookout.trigger import TriggerContext
    from tests.helpers import ScriptedRunner


class StepContext(typ.TypedDict, total=False):
    """State shared between BDD steps in this module."""

    config: LookoutConfig
    trigger: TriggerContext
    runner: ScriptedRunner
    dispatcher: RecordingDispatcher | None
    result: PipelineResult
    error: Exception


_FEATURE = "../playbook_pipeline.feature"


@scenario(_FEATURE, "Pushes to feature branches are validated but not relayed")
def test_feature_branch_not_relayed() -> None:
    """Branches outside the allow-list never reach notification."""


@scenario(_FEATURE, "Pushes to main are relayed despite validation findings")
def test_main_relayed_despite_findings() -> None:
    """Validation findings do not block notification."""


@scenario(_FEATURE, "Manual runs without watched changes send an empty file list")
def test_manual_run_empty_changes() -> None:
    """Manual runs notify even when no watched files changed."""


@scenario(_FEATURE, "A qualifying run without a credential fails")
def test_missing_credential_fails() -> None:
    """Delivery failures are fatal."""


@pytest.fixture
def context() -> StepContext:
    return {"dispatcher": RecordingDispatcher()}


@given("a playbook repository where every check reports findings")
def repository_with_findings(context: StepContext, playbook_repo: Path) -> None:
    context["config"] = LookoutConfig(
        validation=ValidationSettings(root=str(playbook_repo))
    )


@given(parsers.parse('a push to "{branch}" touching "{path}"'))
def push_touching(context: StepContext, branch: str, path: str) -> None:
    context["trigger"] = make_context(branch)
    context["runner"] = failing_checks_runner(path)


@given(parsers.parse('a manual run on "{branch}" touching "{path}"'))
def manual_run_touching(context: StepContext, branch: str, path: str) -> None:
    context["trigger"] = make_context(
        branch, event_name="workflow_dispatch", before=None
    )
    context["runner"] = failing_checks_runner(path)


@given("no dispatch credential is configured")
def no_credential(context: StepContext) -> None:
    context["dispatcher"] = None


def _run(context: StepContext) -> PipelineResult:
    deps = PipelineDependencies(
        runner=context["runner"],
        dispatcher=context["dispatcher"],
        environ={},
        sink=MemorySummarySink(),
    )
    return asyncio.run(run_pipeline(context["trigger"], context["config"], deps))


@when("the pipeline runs")
def pipeline_runs(context: StepContext) -> None:
    context["result"] = _run(context)


@when("the pipeline runs expecting failure")
def pipeline_runs_expecting_failure(context: StepContext) -> None:
    with pytest.raises(DispatchConfigError) as excinfo:
        _run(context)
    context["error"] = excinfo.value


@then("the validation stage completes")
def validation_completes(context: StepContext) -> None:
    report = context["result"].validation
    assert report is not None
    assert report.completed
    assert not report.clean, "Expected every check to report findings"


@then("no notification is sent")
def no_notification(context: StepContext) -> None:
    dispatcher = context["dispatcher"]
    assert dispatcher is not None
    assert dispatcher.records == []
    assert context["result"].record is None
    assert context["runner"].called("git") == []


@then("exactly one notification is sent")
def one_notification(context: StepContext) -> None:
    dispatcher = context["dispatcher"]
    assert dispatcher is not None
    assert len(dispatcher.records) == 1


@then(parsers.parse('the notification names branch "{branch}" and event "{event}"'))
def notification_names(context: StepContext, branch: str, event: str) -> None:
    record = context["result"].record
    assert record is not None
    assert record.branch == branch
    assert record.ref == f"refs/heads/{branch}"
    assert record.event == event


@then(parsers.parse('the notification lists the changed file "{path}"'))
def notification_lists(context: StepContext, path: str) -> None:
    record = context["result"].record
    assert record is not None
    assert record.changed_files == (path,)


@then("the notification lists no changed files")
def notification_lists_nothing(context: StepContext) -> None:
    record = context["result"].record
    assert record is not None
    assert record.changed_files == ()


@then(parsers.parse('the run fails with a delivery error mentioning "{text}"'))
def run_fails(context: StepContext, text: str) -> None:
    assert text in str(context["error"])
