"""Glob-style exclusion of repository paths.

Patterns use .gitignore semantics via ``pathspec``: a pattern without a
slash (``*.md``, ``node_modules``, ``*test*``) matches any path segment, so
ignoring a directory name also ignores everything below it.
"""

from functools import lru_cache
from typing import Iterable

from pathspec import GitIgnoreSpec


@lru_cache(maxsize=32)
def _compile(patterns: tuple[str, ...]) -> GitIgnoreSpec:
    return GitIgnoreSpec.from_lines(patterns)


def matches(path: str, patterns: Iterable[str], is_dir: bool = False) -> bool:
    """Return True if any pattern matches ``path`` or one of its segments."""
    patterns = tuple(patterns)
    if not patterns or not path:
        return False
    spec = _compile(patterns)
    rel = path.strip("/")
    if spec.match_file(rel):
        return True
    return is_dir and spec.match_file(rel + "/")
