"""Repository traversal."""

from .accessor import Entry, LocalRepoAccessor, RepoAccessor
from .crawler import crawl
from .ignore import matches

__all__ = ["Entry", "LocalRepoAccessor", "RepoAccessor", "crawl", "matches"]
