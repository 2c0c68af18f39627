"""Notification Record sent to the downstream repository."""

from __future__ import annotations

import typing as typ

import msgspec

if typ.TYPE_CHECKING:
    from .trigger import TriggerContext


class NotificationRecord(msgspec.Struct, kw_only=True, frozen=True):
    """Metadata describing a qualifying change.

    Attributes
    ----------
    repository : str
        ``owner/name`` of the repository the change originated in.
    ref : str
        Full git reference, for example ``refs/heads/main``.
    branch : str
        Short branch name.
    sha : str
        Commit that triggered the run.
    actor : str
        Identity of the change author.
    event : str
        Trigger kind, ``push`` or ``workflow_dispatch``.
    changed_files : tuple[str, ...]
        Watched paths changed by the revision, possibly empty.

    """

    repository: str
    ref: str
    branch: str
    sha: str
    actor: str
    event: str
    changed_files: tuple[str, ...] = ()


def build_record(
    context: TriggerContext, changed_files: typ.Iterable[str]
) -> NotificationRecord:
    """Assemble the record for ``context`` and its watched changed files."""
    return NotificationRecord(
        repository=context.repository,
        ref=context.ref,
        branch=context.branch,
        sha=context.sha,
        actor=context.actor,
        event=str(context.kind),
        changed_files=tuple(changed_files),
    )
