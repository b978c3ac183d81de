"""Glob-style path filtering for the changed file set."""

from __future__ import annotations

from typing import Callable, Iterable, List, Optional, Union

import pathspec

PathPredicate = Callable[[str], bool]
Patterns = Union[str, Iterable[str], None]


def normalize_path(path: str) -> str:
    normalized = path.replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


def _to_wildmatch(pattern: str) -> Optional[str]:
    """Translate one glob into a gitwildmatch line anchored at the repository root.

    ``*.md`` selects top-level files only; ``**/*.md`` selects them at any depth.
    """

    negated = pattern.startswith("!")
    body = normalize_path(pattern[1:] if negated else pattern)
    if not body:
        return None
    if not body.startswith("**/"):
        body = "/" + body.lstrip("/")
    return ("!" if negated else "") + body


def compile_patterns(patterns: Patterns) -> PathPredicate:
    """Compile one or many glob patterns into a path predicate.

    No patterns means no filter. Patterns apply in order: a plain pattern
    adds matching paths, a ``!``-prefixed one removes them again. ``*`` stays
    within one path segment and hidden files are matched like any other file.
    A pattern matching a directory selects every file below it, as in
    ``.gitignore``.
    """

    if isinstance(patterns, str):
        patterns = [patterns]
    lines = [line for line in map(_to_wildmatch, patterns or ()) if line]
    if not lines:
        return lambda path: True

    spec = pathspec.PathSpec.from_lines("gitwildmatch", lines)
    return lambda path: spec.match_file(normalize_path(path))


def filter_paths(paths: Iterable[str], patterns: Optional[Patterns]) -> List[str]:
    predicate = compile_patterns(patterns)
    return [path for path in paths if predicate(path)]


__all__ = ["compile_patterns", "filter_paths", "normalize_path"]
