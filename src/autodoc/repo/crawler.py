"""Build the in-memory repository tree."""

import logging
from pathlib import Path

from ..errors import AccessError
from ..models import NodeKind, RepoNode
from .accessor import Entry, LocalRepoAccessor, RepoAccessor
from .ignore import matches

logger = logging.getLogger(__name__)


def crawl(
    root: str | Path,
    ignore_patterns: list[str],
    accessor: RepoAccessor | None = None,
) -> RepoNode:
    """Walk the repository depth-first and return the root folder node.

    Children are sorted by name so downstream processing order is
    reproducible. Ignored entries never enter the tree, and neither do
    subfolders that are unreadable or end up empty.
    """
    accessor = accessor or LocalRepoAccessor(root)
    try:
        entries = accessor.list_dir("")
    except OSError as e:
        raise AccessError(f"Cannot read repository root {accessor.root}: {e}") from e

    tree = RepoNode(path="", kind=NodeKind.FOLDER)
    _fill_folder(tree, entries, accessor, list(ignore_patterns))
    return tree


def _fill_folder(folder: RepoNode, entries: list[Entry], accessor: RepoAccessor, patterns: list[str]) -> None:
    for entry in sorted(entries, key=lambda e: e.name):
        rel = f"{folder.path}/{entry.name}" if folder.path else entry.name
        if matches(rel, patterns, is_dir=entry.is_dir):
            logger.debug(f"Ignoring {rel}")
            continue

        if not entry.is_dir:
            folder.add_child(RepoNode(path=rel, kind=NodeKind.FILE))
            continue

        try:
            child_entries = accessor.list_dir(rel)
        except OSError as e:
            logger.warning(f"Skipping unreadable directory {rel}: {e}")
            continue
        child = RepoNode(path=rel, kind=NodeKind.FOLDER)
        _fill_folder(child, child_entries, accessor, patterns)
        if child.children:
            folder.add_child(child)
