"""Non-blocking validation stage.

The stage runs a fixed sequence of independent checks against a working
copy: ``yamllint`` for style, ``ansible-lint`` for Ansible conventions and
``ansible-playbook --syntax-check`` once per playbook. Each check's outcome
is recorded on the :class:`ValidationReport`; none of them raise, so the
stage always completes and the notification stage stays reachable.
"""

from __future__ import annotations

import dataclasses
import enum
import typing as typ

from .commands import ExecutableNotFoundError, run_command
from .paths import normalise_path

if typ.TYPE_CHECKING:
    from pathlib import Path

    from .commands import CommandRunner
    from .config import ValidationSettings


class CheckStatus(enum.StrEnum):
    """Outcome of a single validation check."""

    PASSED = "passed"
    FINDINGS = "findings"
    UNAVAILABLE = "unavailable"
    SKIPPED = "skipped"


@dataclasses.dataclass(frozen=True, slots=True)
class CheckResult:
    """Recorded outcome of one check."""

    name: str
    status: CheckStatus
    command: tuple[str, ...] = ()
    returncode: int | None = None
    output: str = ""

    @property
    def has_findings(self) -> bool:
        """Return ``True`` when the check did not pass cleanly."""
        return self.status in {CheckStatus.FINDINGS, CheckStatus.UNAVAILABLE}


@dataclasses.dataclass(frozen=True, slots=True)
class ValidationReport:
    """Ordered check results for one run of the validation stage."""

    results: tuple[CheckResult, ...]
    completed: bool = True

    @property
    def findings(self) -> tuple[CheckResult, ...]:
        """Return the checks that reported findings or could not run."""
        return tuple(result for result in self.results if result.has_findings)

    @property
    def clean(self) -> bool:
        """Return ``True`` when no check reported findings."""
        return not self.findings

    def count(self, status: CheckStatus) -> int:
        """Return how many checks ended with ``status``."""
        return sum(1 for result in self.results if result.status is status)


@dataclasses.dataclass(frozen=True, slots=True)
class CheckSpec:
    """A named command to run from the working copy root."""

    name: str
    command: tuple[str, ...]


def discover_playbooks(root: Path, globs: typ.Iterable[str]) -> list[str]:
    """Return playbook paths under ``root`` matching ``globs``, sorted."""
    found: set[str] = set()
    for pattern in globs:
        for path in root.glob(pattern):
            if path.is_file():
                found.add(normalise_path(str(path.relative_to(root))))
    return sorted(found)


def build_checks(settings: ValidationSettings, playbooks: list[str]) -> list[CheckSpec]:
    """Return the enabled checks in execution order."""
    checks: list[CheckSpec] = []
    if settings.yamllint:
        checks.append(CheckSpec("yamllint", ("yamllint", "-f", "parsable", ".")))
    if settings.ansible_lint:
        checks.append(CheckSpec("ansible-lint", ("ansible-lint", "--nocolor")))
    if settings.syntax_check:
        checks.extend(
            CheckSpec(
                f"syntax-check {playbook}",
                ("ansible-playbook", "--syntax-check", playbook),
            )
            for playbook in playbooks
        )
    return checks


def run_check(check: CheckSpec, *, cwd: Path, runner: CommandRunner) -> CheckResult:
    """Run one check, converting every failure into a recorded result."""
    try:
        result = runner(check.command, cwd=cwd)
    except ExecutableNotFoundError as exc:
        return CheckResult(
            name=check.name,
            status=CheckStatus.UNAVAILABLE,
            command=check.command,
            output=str(exc),
        )
    except OSError as exc:
        return CheckResult(
            name=check.name,
            status=CheckStatus.UNAVAILABLE,
            command=check.command,
            output=f"failed to start {check.command[0]}: {exc}",
        )

    return CheckResult(
        name=check.name,
        status=CheckStatus.PASSED if result.ok else CheckStatus.FINDINGS,
        command=check.command,
        returncode=result.returncode,
        output=result.output,
    )


def run_validation(
    settings: ValidationSettings,
    *,
    runner: CommandRunner = run_command,
    on_result: typ.Callable[[CheckResult], None] | None = None,
) -> ValidationReport:
    """Run every enabled check and return the report.

    Parameters
    ----------
    settings : ValidationSettings
        Check toggles, playbook globs and the working copy root.
    runner : CommandRunner, optional
        Executes each check's argv; defaults to a subprocess runner.
    on_result : Callable[[CheckResult], None] | None, optional
        Invoked after each check, used for progress logging.

    Returns
    -------
    ValidationReport
        Results in execution order. ``completed`` is always ``True``.

    """
    root = settings.root_path
    playbooks = discover_playbooks(root, settings.playbook_globs)
    results: list[CheckResult] = []

    for check in build_checks(settings, playbooks):
        result = run_check(check, cwd=root, runner=runner)
        results.append(result)
        if on_result is not None:
            on_result(result)

    if settings.syntax_check and not playbooks:
        skipped = CheckResult(
            name="syntax-check",
            status=CheckStatus.SKIPPED,
            output="no playbooks matched " + ", ".join(settings.playbook_globs),
        )
        results.append(skipped)
        if on_result is not None:
            on_result(skipped)

    return ValidationReport(results=tuple(results))
