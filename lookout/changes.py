"""Changed-file lookup restricted to the watched path patterns."""

from __future__ import annotations

import typing as typ

from .commands import ExecutableNotFoundError, run_command
from .errors import ChangedFilesError
from .logging import get_logger, log_warning
from .trigger import TriggerKind

if typ.TYPE_CHECKING:
    from pathlib import Path

    from .commands import CommandResult, CommandRunner
    from .paths import WatchedPaths
    from .trigger import TriggerContext

logger = get_logger(__name__)

# NUL-terminated output keeps non-ASCII paths unquoted.
_GIT_LIST_FLAGS = ("--name-only", "-z")


def diff_command(context: TriggerContext, *, base_reachable: bool = True) -> list[str]:
    """Return the git argv listing files touched by the triggering revision.

    A push with a known, reachable previous revision is diffed against it.
    Manual runs, pushes that create a branch and pushes whose previous
    revision is gone (after a force-push) list the files of the head commit
    alone.
    """
    has_base = context.kind is TriggerKind.PUSH and not context.creates_branch
    if has_base and base_reachable:
        return ["git", "diff", *_GIT_LIST_FLAGS, context.before or "", context.sha]
    return [
        "git",
        "diff-tree",
        "--no-commit-id",
        *_GIT_LIST_FLAGS,
        "-r",
        "--root",
        context.sha,
    ]


def commit_exists_command(revision: str) -> list[str]:
    """Return the git argv that succeeds only when ``revision`` is a local commit."""
    return ["git", "cat-file", "-e", f"{revision}^{{commit}}"]


def _run_git(command: list[str], *, cwd: Path, runner: CommandRunner) -> CommandResult:
    try:
        return runner(command, cwd=cwd)
    except (ExecutableNotFoundError, OSError) as exc:
        raise ChangedFilesError(command, -1, str(exc)) from exc


def _base_reachable(
    context: TriggerContext, *, cwd: Path, runner: CommandRunner
) -> bool:
    if context.kind is not TriggerKind.PUSH or context.creates_branch:
        return True
    before = context.before or ""
    if _run_git(commit_exists_command(before), cwd=cwd, runner=runner).ok:
        return True
    log_warning(
        logger,
        "Previous revision %s is not available; listing files of %s only",
        before,
        context.sha,
    )
    return False


def split_name_list(output: str) -> list[str]:
    """Split NUL-terminated ``git --name-only -z`` output into paths."""
    return [path for path in output.split("\0") if path.strip()]


def list_changed_files(
    context: TriggerContext,
    watched: WatchedPaths,
    *,
    cwd: Path,
    runner: CommandRunner = run_command,
) -> list[str]:
    """Return watched files changed by ``context``, in git's order.

    Raises
    ------
    ChangedFilesError
        If git is unavailable or exits with a non-zero status.

    """
    reachable = _base_reachable(context, cwd=cwd, runner=runner)
    command = diff_command(context, base_reachable=reachable)
    result = _run_git(command, cwd=cwd, runner=runner)
    if not result.ok:
        raise ChangedFilesError(command, result.returncode, result.stderr)
    return watched.filter(split_name_list(result.stdout))
