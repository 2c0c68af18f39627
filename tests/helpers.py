"""Shared test doubles for the pipeline seams."""

from __future__ import annotations

import dataclasses
import typing as typ

from lookout.commands import CommandResult, ExecutableNotFoundError
from lookout.dispatch import DispatchReceipt
from lookout.trigger import TriggerContext

if typ.TYPE_CHECKING:
    from pathlib import Path

    from lookout.record import NotificationRecord

HEAD_SHA = "a" * 40
BEFORE_SHA = "b" * 40


class ScriptedRunner:
    """Command runner returning canned results keyed by executable name.

    A key of ``"<executable> <subcommand>"`` takes precedence over the bare
    executable. Executables without a script entry are treated as missing
    from PATH.
    """

    def __init__(self, scripts: dict[str, CommandResult | int] | None = None) -> None:
        """Store the canned results; an int is shorthand for a bare exit code."""
        self._scripts = scripts or {}
        self.calls: list[tuple[str, ...]] = []

    def __call__(self, args: typ.Sequence[str], *, cwd: Path) -> CommandResult:
        """Record the call and return the scripted result."""
        argv = tuple(args)
        self.calls.append(argv)
        scripted = self._scripts.get(" ".join(argv[:2]), self._scripts.get(argv[0]))
        if scripted is None:
            raise ExecutableNotFoundError(argv[0])
        if isinstance(scripted, int):
            return CommandResult(args=argv, returncode=scripted)
        return dataclasses.replace(scripted, args=argv)

    def called(self, executable: str) -> list[tuple[str, ...]]:
        """Return the calls made to ``executable``."""
        return [call for call in self.calls if call[0] == executable]


def git_output(*paths: str) -> CommandResult:
    """Return a successful NUL-terminated git listing of ``paths``."""
    stdout = "".join(f"{path}\0" for path in paths)
    return CommandResult(args=("git",), returncode=0, stdout=stdout)


def failing_checks_runner(*changed: str) -> ScriptedRunner:
    """Return a runner where every check reports findings and git lists ``changed``."""
    return ScriptedRunner(
        {
            "yamllint": CommandResult(
                args=("yamllint",),
                returncode=1,
                stdout="playbooks/a.yml:3:1: [error] wrong indentation",
            ),
            "ansible-lint": CommandResult(
                args=("ansible-lint",),
                returncode=2,
                stdout="name[missing]: All tasks should be named",
            ),
            "ansible-playbook": CommandResult(
                args=("ansible-playbook",),
                returncode=4,
                stderr="ERROR! Syntax Error while loading YAML.",
            ),
            "git": git_output(*changed),
        }
    )


class RecordingDispatcher:
    """Dispatcher double that records every delivery attempt."""

    def __init__(self, error: BaseException | None = None) -> None:
        """Optionally fail every delivery with ``error``."""
        self.records: list[NotificationRecord] = []
        self.closed = False
        self._error = error

    async def dispatch(self, record: NotificationRecord) -> DispatchReceipt:
        """Record ``record`` and return a 204 receipt, or raise the error."""
        self.records.append(record)
        if self._error is not None:
            raise self._error
        return DispatchReceipt(
            repository="octo/downstream",
            event_type="playbooks-updated",
            status_code=204,
        )

    async def aclose(self) -> None:
        """Mark the dispatcher closed."""
        self.closed = True


def make_context(
    branch: str = "main",
    *,
    event_name: str = "push",
    before: str | None = BEFORE_SHA,
) -> TriggerContext:
    """Build a trigger context for ``branch``."""
    return TriggerContext.from_values(
        repository="octo/playbooks",
        ref=f"refs/heads/{branch}",
        sha=HEAD_SHA,
        actor="octocat",
        event_name=event_name,
        before=before,
    )
