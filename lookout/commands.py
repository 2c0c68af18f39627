"""Subprocess seam shared by the validation checks and the git lookup.

Stages receive a :class:`CommandRunner` rather than calling ``subprocess``
directly so tests can substitute scripted results.
"""

from __future__ import annotations

import dataclasses
import shutil
import subprocess
import typing as typ

if typ.TYPE_CHECKING:
    from pathlib import Path


@dataclasses.dataclass(frozen=True, slots=True)
class CommandResult:
    """Outcome of a finished external command."""

    args: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        """Return ``True`` for a zero exit status."""
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Return stdout and stderr joined, trimmed of surrounding whitespace."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part).strip()


class ExecutableNotFoundError(LookupError):
    """Required CLI tool is not installed."""

    def __init__(self, name: str) -> None:
        """Record the missing executable."""
        self.name = name
        super().__init__(f"Required executable '{name}' not found in PATH")


class CommandRunner(typ.Protocol):
    """Callable that runs an argv in a working directory."""

    def __call__(self, args: typ.Sequence[str], *, cwd: Path) -> CommandResult:
        """Run ``args`` and return its result without raising on failure."""
        ...


def run_command(args: typ.Sequence[str], *, cwd: Path) -> CommandResult:
    """Run a command with captured text output.

    Raises
    ------
    ExecutableNotFoundError
        If ``args[0]`` is not available in PATH.

    """
    argv = tuple(args)
    if shutil.which(argv[0]) is None:
        raise ExecutableNotFoundError(argv[0])
    completed = subprocess.run(  # noqa: S603 - argv built from fixed tool names
        argv,
        cwd=cwd,
        capture_output=True,
        text=True,
        check=False,
    )
    return CommandResult(
        args=argv,
        returncode=completed.returncode,
        stdout=completed.stdout,
        stderr=completed.stderr,
    )
