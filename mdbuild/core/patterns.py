"""Glob pattern helpers shared by discovery and change classification."""

from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path, PurePosixPath


@lru_cache(maxsize=128)
def compile_glob(pattern: str) -> re.Pattern[str]:
    """Translate a glob into a regex over POSIX relative paths.

    ``*`` and ``?`` never cross a ``/``; ``**/`` matches zero or more
    directories and a trailing ``**`` matches everything below.
    """
    pattern = pattern.removeprefix("./")
    parts: list[str] = []
    i, n = 0, len(pattern)
    while i < n:
        char = pattern[i]
        if char == "*":
            if pattern.startswith("**/", i):
                parts.append("(?:.*/)?")
                i += 3
                continue
            if pattern.startswith("**", i):
                parts.append(".*")
                i += 2
                continue
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        elif char == "[":
            end = pattern.find("]", i + 1)
            if end == -1:
                parts.append(re.escape(char))
            else:
                body = pattern[i + 1 : end]
                if body.startswith("!"):
                    body = "^" + body[1:]
                parts.append(f"[{body}]")
                i = end + 1
                continue
        else:
            parts.append(re.escape(char))
        i += 1
    return re.compile("".join(parts))


def matches(relative: PurePosixPath | str, pattern: str) -> bool:
    """Return True when a root-relative path matches the glob."""
    return compile_glob(pattern).fullmatch(str(PurePosixPath(relative))) is not None


def relative_to(path: Path, base: Path) -> PurePosixPath | None:
    """Return ``path`` relative to ``base`` as a POSIX path, or None if outside."""
    try:
        return PurePosixPath(path.relative_to(base).as_posix())
    except ValueError:
        return None


def expand(root: Path, pattern: str) -> list[Path]:
    """List the files under ``root`` matching the glob, sorted.

    Uses the same matcher as change classification, so a file is found here
    exactly when an edit to it would be picked up while watching.
    """
    regex = compile_glob(pattern)
    return sorted(
        path
        for path in root.rglob("*")
        if regex.fullmatch(path.relative_to(root).as_posix()) and path.is_file()
    )
