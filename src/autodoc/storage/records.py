"""JSON output store: one ProcessingRecord file per repository path."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterator

from ..models import NodeKind, ProcessingRecord

logger = logging.getLogger(__name__)

FOLDER_RECORD = "folder.json"
FILE_SUFFIX = ".file.json"


class RecordStore:
    """Persists ProcessingRecords under a json root mirroring the repository.

    Files map to ``<path>.file.json`` and folders to ``<path>/folder.json``,
    so no file name can collide with a folder record.
    Every write replaces its file atomically, so keys can be updated
    concurrently and a crash never leaves a half-written record.
    """

    def __init__(self, root: str | Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def record_path(self, path: str, kind: NodeKind) -> Path:
        if kind is NodeKind.FOLDER:
            return self.root / path / FOLDER_RECORD if path else self.root / FOLDER_RECORD
        return self.root / f"{path}{FILE_SUFFIX}"

    def load(self, path: str, kind: NodeKind) -> ProcessingRecord | None:
        file_path = self.record_path(path, kind)
        if not file_path.exists():
            return None
        try:
            data = json.loads(file_path.read_text(encoding="utf-8"))
            record = ProcessingRecord.from_dict(data)
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring corrupt record {file_path}: {e}")
            return None
        if record.path != path or record.kind is not kind:
            logger.warning(f"Ignoring record {file_path} stored for {record.path!r}")
            return None
        return record

    def save(self, record: ProcessingRecord) -> Path:
        file_path = self.record_path(record.path, record.kind)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=file_path.parent, prefix=".", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(record.to_dict(), f, indent=2, ensure_ascii=False)
            os.replace(tmp, file_path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
        return file_path

    def iter_records(self) -> Iterator[ProcessingRecord]:
        """Yield every readable record in the store."""
        for file_path in sorted(self.root.rglob("*.json")):
            try:
                yield ProcessingRecord.from_dict(json.loads(file_path.read_text(encoding="utf-8")))
            except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable record {file_path}: {e}")

    def prune(self, keep: set[tuple[str, NodeKind]]) -> list[str]:
        """Delete records for paths no longer in the repository tree."""
        wanted = {self.record_path(p, k) for p, k in keep}
        removed = []
        for file_path in sorted(self.root.rglob("*.json")):
            if file_path not in wanted:
                file_path.unlink()
                removed.append(str(file_path.relative_to(self.root)))
        for directory in sorted((d for d in self.root.rglob("*") if d.is_dir()), reverse=True):
            if not any(directory.iterdir()):
                directory.rmdir()
        return removed
