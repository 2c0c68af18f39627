"""Branch allow-list gate for the notification stage."""

from __future__ import annotations

import typing as typ

DEFAULT_ALLOWED_BRANCHES: tuple[str, ...] = ("main", "develop")


def is_allowed_branch(branch: str, allowed: typ.Collection[str]) -> bool:
    """Return ``True`` only when ``branch`` is an exact member of ``allowed``.

    Comparison is case-sensitive and performs no prefix or glob matching, so
    ``main`` admits neither ``Main`` nor ``main-hotfix``.
    """
    return bool(branch) and branch in allowed
