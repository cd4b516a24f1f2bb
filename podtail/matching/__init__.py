"""Pod and container name matching.

A pattern is either a shell glob (``api-*``), which must match the whole
name, or a regular expression enclosed in slashes (``/^api-[0-9]+/``),
which is searched anywhere in the name. A pod is matched by its name and a
container by its container name.

Matchers are pure and safe to call concurrently.
"""

from __future__ import annotations

import fnmatch
import re
from typing import Protocol

from podtail.models.pods import ContainerSpec, PodSnapshot

__all__ = [
    "MatchAll",
    "MatchNone",
    "Matcher",
    "PatternMatcher",
    "build_exclusion_matcher",
    "build_inclusion_matcher",
]


class Matcher(Protocol):
    """Boolean predicate over a pod or a container."""

    def match(self, entity: PodSnapshot | ContainerSpec) -> bool: ...


class _Constant:
    def __init__(self, result: bool) -> None:
        self._result = result

    def match(self, entity: PodSnapshot | ContainerSpec) -> bool:
        return self._result

    def __repr__(self) -> str:
        return "MatchAll" if self._result else "MatchNone"


MatchAll: Matcher = _Constant(True)
MatchNone: Matcher = _Constant(False)


def _compile(pattern: str) -> tuple[re.Pattern[str], bool]:
    """Compile *pattern*; the flag is True for globs, which must match the whole name."""
    if not pattern:
        raise ValueError("Pattern must not be empty")
    if len(pattern) > 2 and pattern.startswith("/") and pattern.endswith("/"):
        try:
            return re.compile(pattern[1:-1]), False
        except re.error as exc:
            raise ValueError(f"Invalid regular expression {pattern!r}: {exc}") from exc
    # fnmatch.translate only anchors the end, so globs are applied with fullmatch
    return re.compile(fnmatch.translate(pattern)), True


class PatternMatcher:
    """Matches when any of its patterns matches the entity's name."""

    def __init__(self, patterns: list[str]) -> None:
        self._sources = list(patterns)
        self._compiled = [_compile(p) for p in patterns]

    @property
    def patterns(self) -> list[str]:
        return list(self._sources)

    def match(self, entity: PodSnapshot | ContainerSpec) -> bool:
        name = entity.name
        for compiled, whole in self._compiled:
            found = compiled.fullmatch(name) if whole else compiled.search(name)
            if found is not None:
                return True
        return False

    def __repr__(self) -> str:
        return f"PatternMatcher({self._sources!r})"


def build_inclusion_matcher(patterns: list[str]) -> Matcher:
    """Matcher for the inclusion side: no patterns means everything."""
    if not patterns:
        return MatchAll
    return PatternMatcher(patterns)


def build_exclusion_matcher(patterns: list[str]) -> Matcher:
    """Matcher for the exclusion side: no patterns means nothing."""
    if not patterns:
        return MatchNone
    return PatternMatcher(patterns)
