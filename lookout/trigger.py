"""Trigger context supplied by the hosting CI environment."""

from __future__ import annotations

import dataclasses
import enum
import os
import typing as typ
from pathlib import Path

import msgspec

from .errors import TriggerContextError

_BRANCH_REF_PREFIX = "refs/heads/"
ZERO_SHA = "0" * 40


class TriggerKind(enum.StrEnum):
    """How the pipeline run was started."""

    PUSH = "push"
    MANUAL = "workflow_dispatch"

    @classmethod
    def parse(cls, event_name: str) -> TriggerKind:
        """Map a GitHub event name onto a trigger kind."""
        try:
            return cls(event_name.strip())
        except ValueError as exc:
            raise TriggerContextError.unsupported_event(event_name) from exc


class _PushPayload(msgspec.Struct):
    """Subset of the GitHub push event payload Lookout reads."""

    before: str | None = None


def branch_from_ref(ref: str) -> str:
    """Return the short branch name for a ``refs/heads/`` ref, else ``""``."""
    if ref.startswith(_BRANCH_REF_PREFIX):
        return ref.removeprefix(_BRANCH_REF_PREFIX)
    return ""


@dataclasses.dataclass(frozen=True, slots=True)
class TriggerContext:
    """Immutable description of the change that started a run."""

    repository: str
    ref: str
    branch: str
    sha: str
    actor: str
    kind: TriggerKind
    before: str | None = None

    @property
    def creates_branch(self) -> bool:
        """Return ``True`` when there is no previous revision to diff against."""
        return not self.before or self.before == ZERO_SHA

    @classmethod
    def from_values(  # noqa: PLR0913
        cls,
        *,
        repository: str,
        ref: str,
        sha: str,
        actor: str,
        event_name: str,
        branch: str = "",
        before: str | None = None,
    ) -> TriggerContext:
        """Build a context from explicit values, deriving the branch if needed."""
        for field, value, env_var in (
            ("repository", repository, "GITHUB_REPOSITORY"),
            ("ref", ref, "GITHUB_REF"),
            ("sha", sha, "GITHUB_SHA"),
            ("actor", actor, "GITHUB_ACTOR"),
            ("event name", event_name, "GITHUB_EVENT_NAME"),
        ):
            if not value.strip():
                raise TriggerContextError.missing(field, env_var)

        kind = TriggerKind.parse(event_name)
        short_branch = branch.strip() or branch_from_ref(ref.strip())
        if not short_branch:
            raise TriggerContextError.missing("branch", "GITHUB_REF_NAME")

        return cls(
            repository=repository.strip(),
            ref=ref.strip(),
            branch=short_branch,
            sha=sha.strip(),
            actor=actor.strip(),
            kind=kind,
            before=before.strip() if before and before.strip() else None,
        )

    @classmethod
    def from_env(cls, environ: typ.Mapping[str, str] | None = None) -> TriggerContext:
        """Build a context from the GitHub Actions environment variables.

        ``GITHUB_EVENT_PATH`` is only consulted for push events, where it
        provides the ``before`` revision.
        """
        env = os.environ if environ is None else environ
        event_name = env.get("GITHUB_EVENT_NAME", "")
        before: str | None = None
        event_path = env.get("GITHUB_EVENT_PATH", "").strip()
        if event_path and event_name.strip() == TriggerKind.PUSH:
            before = read_push_before(Path(event_path))

        return cls.from_values(
            repository=env.get("GITHUB_REPOSITORY", ""),
            ref=env.get("GITHUB_REF", ""),
            branch=env.get("GITHUB_REF_NAME", ""),
            sha=env.get("GITHUB_SHA", ""),
            actor=env.get("GITHUB_ACTOR", ""),
            event_name=event_name,
            before=before,
        )


def read_push_before(path: Path) -> str | None:
    """Read the ``before`` revision from a push event payload file."""
    try:
        payload = msgspec.json.decode(path.read_bytes(), type=_PushPayload)
    except (OSError, msgspec.DecodeError) as exc:
        raise TriggerContextError.unreadable_event(str(path), exc) from exc
    return payload.before
