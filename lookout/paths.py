"""Watched path pattern matching.

Patterns follow GitHub Actions ``paths`` filters: ``*`` stays inside a path
segment, ``**`` spans any number of segments and a leading ``!`` marks an
exclusion. A path is watched when at least one inclusion matches and no
exclusion does.
"""

from __future__ import annotations

import dataclasses
import typing as typ
from pathlib import PurePosixPath, PureWindowsPath

DEFAULT_WATCHED_PATHS: tuple[str, ...] = (
    "playbooks/**",
    "roles/**",
    "inventories/**",
    "group_vars/**",
    "host_vars/**",
)

_NEGATION_PREFIX = "!"


def normalise_path(path: str) -> str:
    """Return ``path`` with POSIX separators and no leading ``./``."""
    stripped = path.strip()
    if not stripped:
        return ""
    posix = PureWindowsPath(stripped).as_posix()
    while posix.startswith("./"):
        posix = posix[2:]
    return posix


@dataclasses.dataclass(frozen=True, slots=True)
class WatchedPaths:
    """Compiled inclusion and exclusion globs."""

    include: tuple[str, ...]
    exclude: tuple[str, ...] = ()

    @classmethod
    def from_patterns(cls, patterns: typ.Iterable[str]) -> WatchedPaths:
        """Split raw patterns into inclusions and ``!``-prefixed exclusions."""
        include: list[str] = []
        exclude: list[str] = []
        for raw in patterns:
            pattern = raw.strip()
            if not pattern:
                continue
            if pattern.startswith(_NEGATION_PREFIX):
                exclude.append(normalise_path(pattern[1:]))
            else:
                include.append(normalise_path(pattern))
        return cls(include=tuple(include), exclude=tuple(exclude))

    def matches(self, path: str) -> bool:
        """Return ``True`` when ``path`` is covered by the watched patterns."""
        normalised = normalise_path(path)
        if not normalised:
            return False
        candidate = PurePosixPath(normalised)
        if not any(candidate.full_match(pattern) for pattern in self.include):
            return False
        return not any(candidate.full_match(pattern) for pattern in self.exclude)

    def filter(self, paths: typ.Iterable[str]) -> list[str]:
        """Return watched paths from ``paths``, keeping order and dropping repeats."""
        seen: set[str] = set()
        watched: list[str] = []
        for path in paths:
            normalised = normalise_path(path)
            if normalised in seen or not self.matches(normalised):
                continue
            seen.add(normalised)
            watched.append(normalised)
        return watched
