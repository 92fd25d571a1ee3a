"""Ant-style include/exclude path scanning.

Patterns are matched against forward-slash relative paths:
- ``*`` matches within one path segment, ``?`` one character of a segment
- ``**`` matches zero or more whole segments
- a pattern ending in ``/`` matches everything below that directory
Matching is case-sensitive, and dotfiles are not special.
"""

import logging
import os
import re
from collections.abc import Iterable
from functools import lru_cache
from pathlib import Path

from ghpublish.errors import IOFailure

logger = logging.getLogger("ghpublish.paths")

__all__ = ["get_matching_paths", "is_empty", "match_path", "remove_empties"]


def is_empty(*values: str | None) -> bool:
    """True if no values are given or any of them is None or empty."""
    if not values:
        return True
    return any(not value for value in values)


def remove_empties(values: Iterable[str | None] | None) -> list[str]:
    """Only the non-None, non-empty values, in order."""
    if not values:
        return []
    return [value for value in values if value]


def _normalize_pattern(pattern: str) -> str:
    pattern = pattern.replace("\\", "/")
    if pattern.endswith("/"):
        pattern += "**"
    return pattern.lstrip("/")


def _translate_segment(segment: str) -> str:
    parts = []
    for char in segment:
        if char == "*":
            # consecutive stars inside a segment behave as one
            if not parts or parts[-1] != "[^/]*":
                parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        else:
            parts.append(re.escape(char))
    return "".join(parts)


@lru_cache(maxsize=256)
def _compile(pattern: str) -> re.Pattern[str]:
    segments = _normalize_pattern(pattern).split("/")
    regex = []
    for index, segment in enumerate(segments):
        last = index == len(segments) - 1
        if segment == "**":
            regex.append(".*" if last else "(?:[^/]*/)*")
        else:
            regex.append(_translate_segment(segment) + ("" if last else "/"))
    return re.compile("".join(regex))


def match_path(pattern: str, path: str) -> bool:
    """Match a forward-slash relative path against an ant-style pattern."""
    return _compile(pattern).fullmatch(path) is not None


def get_matching_paths(
    includes: Iterable[str | None] | None,
    excludes: Iterable[str | None] | None,
    base_dir: str | os.PathLike[str],
) -> list[str]:
    """Relative paths of files under base_dir selected by the patterns.

    With no includes every file is a candidate; excludes then remove
    matches. Empty patterns are ignored. The result uses ``/`` separators
    and is sorted so repeated scans of the same tree are identical.

    Raises:
        IOFailure: If base_dir is not an existing directory
    """
    base = Path(base_dir)
    if not base.is_dir():
        raise IOFailure(f"Base directory {base} does not exist", path=str(base))

    include_patterns = remove_empties(includes) or ["**"]
    exclude_patterns = remove_empties(excludes)

    matched = []
    for root, dirs, files in os.walk(base):
        dirs.sort()
        relative_root = Path(root).relative_to(base).as_posix()
        for name in files:
            relative = name if relative_root == "." else f"{relative_root}/{name}"
            if not any(match_path(p, relative) for p in include_patterns):
                continue
            if any(match_path(p, relative) for p in exclude_patterns):
                continue
            matched.append(relative)

    matched.sort()
    logger.debug(
        "Scanned %s: %d files matched (includes=%s, excludes=%s)",
        base,
        len(matched),
        include_patterns,
        exclude_patterns,
    )
    return matched
