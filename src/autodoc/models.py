"""Data models used throughout autodoc."""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterator


class NodeKind(str, Enum):
    FILE = "file"
    FOLDER = "folder"


class NodeStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    DONE = "done"
    FAILED = "failed"
    # An ancestor of a failed node; cannot reach done this run.
    BLOCKED = "blocked"


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class RepoNode:
    """A file or folder in the crawled repository tree.

    ``path`` is POSIX-style and relative to the repository root; the root
    itself has the empty path.
    """
    path: str
    kind: NodeKind
    children: list["RepoNode"] = field(default_factory=list)
    parent: "RepoNode | None" = field(default=None, repr=False, compare=False)

    @property
    def name(self) -> str:
        return self.path.rsplit("/", 1)[-1] if self.path else ""

    @property
    def display_path(self) -> str:
        return self.path or "."

    @property
    def is_folder(self) -> bool:
        return self.kind is NodeKind.FOLDER

    def add_child(self, child: "RepoNode") -> None:
        child.parent = self
        self.children.append(child)

    def ordered_children(self) -> list["RepoNode"]:
        """Children with files before folders, each group in crawl order."""
        files = [c for c in self.children if not c.is_folder]
        folders = [c for c in self.children if c.is_folder]
        return files + folders

    def walk(self) -> Iterator["RepoNode"]:
        """Yield every node of the subtree, children before their parent."""
        for child in self.children:
            yield from child.walk()
        yield self

    def find(self, path: str) -> "RepoNode | None":
        for node in self.walk():
            if node.path == path:
                return node
        return None


@dataclass
class ProcessingRecord:
    """Persisted state and summary for one RepoNode."""
    path: str
    kind: NodeKind
    fingerprint: str = ""
    summary: str = ""
    questions: str = ""
    status: NodeStatus = NodeStatus.PENDING
    retry_count: int = 0
    error: str | None = None
    model: str | None = None
    url: str | None = None
    files: list[str] = field(default_factory=list)
    folders: list[str] = field(default_factory=list)
    created_at: str = field(default_factory=utcnow)
    updated_at: str = field(default_factory=utcnow)

    @property
    def is_done(self) -> bool:
        return self.status is NodeStatus.DONE

    def transition(self, status: NodeStatus, error: str | None = None) -> None:
        self.status = status
        self.error = error
        self.updated_at = utcnow()

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["kind"] = self.kind.value
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProcessingRecord":
        known = {f for f in cls.__dataclass_fields__}
        values = {k: v for k, v in data.items() if k in known}
        values["kind"] = NodeKind(values["kind"])
        values["status"] = NodeStatus(values.get("status", NodeStatus.PENDING.value))
        return cls(**values)


@dataclass
class Summary:
    """Output of the node processor for one node."""
    text: str
    questions: str = ""
    model: str | None = None
    retries: int = 0


@dataclass
class DocumentLink:
    title: str
    href: str


@dataclass
class DocumentNode:
    """A rendered document for one RepoNode."""
    path: str
    kind: NodeKind
    title: str
    body: str
    questions: str = ""
    fingerprint: str = ""
    source_url: str | None = None
    parent: DocumentLink | None = None
    children: list[DocumentLink] = field(default_factory=list)


@dataclass
class Chunk:
    """A bounded-length slice of a document, the unit of embedding."""
    source: str
    index: int
    text: str
    start: int = 0
    end: int = 0
    embedding: list[float] | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class RunSummary:
    """Outcome of one scheduler run."""
    processed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    blocked: list[str] = field(default_factory=list)
    binary: list[str] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def complete(self) -> bool:
        return not self.failed and not self.blocked
