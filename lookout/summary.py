"""Markdown run summary for human review.

The summary is appended to the file named by ``GITHUB_STEP_SUMMARY`` when
running under GitHub Actions and printed to standard output elsewhere.
"""

from __future__ import annotations

import os
import sys
import typing as typ
from pathlib import Path

from .validation import CheckStatus

if typ.TYPE_CHECKING:
    from .dispatch import DispatchReceipt
    from .record import NotificationRecord
    from .validation import ValidationReport

STEP_SUMMARY_ENV_VAR = "GITHUB_STEP_SUMMARY"

_STATUS_LABELS: dict[CheckStatus, str] = {
    CheckStatus.PASSED: "passed",
    CheckStatus.FINDINGS: "findings",
    CheckStatus.UNAVAILABLE: "tool unavailable",
    CheckStatus.SKIPPED: "skipped",
}
_MAX_OUTPUT_LINES = 40


def _fenced(text: str) -> list[str]:
    lines = text.splitlines()
    if len(lines) > _MAX_OUTPUT_LINES:
        omitted = len(lines) - _MAX_OUTPUT_LINES
        lines = [*lines[:_MAX_OUTPUT_LINES], f"... {omitted} more lines"]
    return ["```text", *lines, "```"]


def render_validation_markdown(report: ValidationReport) -> str:
    """Render the validation stage outcome.

    Findings never fail the run, so the heading states the counts and the
    per-check output follows in collapsible blocks.
    """
    lines = ["## Validation", ""]
    if report.clean:
        lines.append("All checks passed.")
    else:
        lines.append(
            f"{len(report.findings)} of {len(report.results)} checks reported "
            "findings. Findings are informational and do not block notification."
        )
    lines.extend(["", "| Check | Result |", "| --- | --- |"])
    lines.extend(
        f"| `{result.name}` | {_STATUS_LABELS[result.status]} |"
        for result in report.results
    )
    lines.append("")

    for result in report.findings:
        lines.append(f"<details><summary>{result.name}</summary>")
        lines.append("")
        lines.extend(_fenced(result.output or "no output"))
        lines.extend(["", "</details>", ""])

    return "\n".join(lines)


def render_gate_markdown(branch: str, *, allowed: bool) -> str:
    """Render the branch gate decision."""
    if allowed:
        return f"## Notification\n\nBranch `{branch}` is allow-listed.\n"
    return (
        "## Notification\n\n"
        f"Branch `{branch}` is not allow-listed; no notification was sent.\n"
    )


def render_delivery_markdown(
    record: NotificationRecord, receipt: DispatchReceipt
) -> str:
    """Render the delivery confirmation."""
    lines = [
        f"Sent `{receipt.event_type}` to `{receipt.repository}` "
        f"(HTTP {receipt.status_code}).",
        "",
        f"- Repository: `{record.repository}`",
        f"- Ref: `{record.ref}`",
        f"- Commit: `{record.sha}`",
        f"- Actor: `{record.actor}`",
        f"- Event: `{record.event}`",
        "",
    ]
    if record.changed_files:
        lines.append("Changed files:")
        lines.append("")
        lines.extend(f"- `{path}`" for path in record.changed_files)
    else:
        lines.append("No watched files changed.")
    lines.append("")
    return "\n".join(lines)


def render_failure_markdown(error: BaseException) -> str:
    """Render a fatal notification-stage failure."""
    return f"**Notification failed:** {type(error).__name__}: {error}\n"


class SummarySink(typ.Protocol):
    """Destination for rendered summary fragments."""

    def write(self, markdown: str) -> None:
        """Append ``markdown`` to the summary."""
        ...


class StepSummarySink:
    """Append summary fragments to a GitHub step summary file."""

    def __init__(self, path: Path) -> None:
        """Initialise the sink with the summary file path."""
        self._path = path

    def write(self, markdown: str) -> None:
        """Append ``markdown`` followed by a blank line."""
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(markdown.rstrip("\n") + "\n\n")


class StreamSummarySink:
    """Write summary fragments to a text stream, stdout by default."""

    def __init__(self, stream: typ.TextIO | None = None) -> None:
        """Initialise the sink with an optional stream."""
        self._stream = stream

    def write(self, markdown: str) -> None:
        """Write ``markdown`` followed by a blank line."""
        stream = self._stream or sys.stdout
        stream.write(markdown.rstrip("\n") + "\n\n")


class MemorySummarySink:
    """Collect summary fragments in memory."""

    def __init__(self) -> None:
        """Initialise an empty fragment list."""
        self.fragments: list[str] = []

    def write(self, markdown: str) -> None:
        """Store ``markdown``."""
        self.fragments.append(markdown)

    @property
    def text(self) -> str:
        """Return every fragment joined by blank lines."""
        return "\n\n".join(fragment.rstrip("\n") for fragment in self.fragments)


def summary_sink_from_env(environ: typ.Mapping[str, str] | None = None) -> SummarySink:
    """Return the step summary sink under Actions, otherwise stdout."""
    env = os.environ if environ is None else environ
    raw = env.get(STEP_SUMMARY_ENV_VAR, "").strip()
    if raw:
        return StepSummarySink(Path(raw))
    return StreamSummarySink()
