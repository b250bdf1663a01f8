"""Access to repository content, abstracted from where it lives."""

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Entry:
    name: str
    is_dir: bool


class RepoAccessor(ABC):
    """Lists directories and reads files relative to a repository root."""

    @abstractmethod
    def list_dir(self, rel_path: str) -> list[Entry]:
        """List entries of a directory. Raises OSError if unreadable."""

    @abstractmethod
    def read_bytes(self, rel_path: str) -> bytes:
        """Read a file. Raises OSError if unreadable."""

    @property
    @abstractmethod
    def root(self) -> str:
        """Human-readable location of the repository root."""


class LocalRepoAccessor(RepoAccessor):
    """Repository content on the local filesystem."""

    def __init__(self, root: str | Path):
        self._root = Path(root).expanduser().resolve()

    @property
    def root(self) -> str:
        return str(self._root)

    def _resolve(self, rel_path: str) -> Path:
        return self._root / rel_path if rel_path else self._root

    def list_dir(self, rel_path: str) -> list[Entry]:
        entries = []
        with os.scandir(self._resolve(rel_path)) as it:
            for entry in it:
                # Symlinks are not followed, so cycles cannot occur.
                if entry.is_symlink():
                    continue
                entries.append(Entry(entry.name, entry.is_dir(follow_symlinks=False)))
        return entries

    def read_bytes(self, rel_path: str) -> bytes:
        return self._resolve(rel_path).read_bytes()
