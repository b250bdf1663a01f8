"""Turn the persisted summary tree into linked markdown documents."""

import logging
import posixpath
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..config import project_name
from ..models import DocumentLink, DocumentNode, NodeKind, ProcessingRecord
from ..storage.records import RecordStore
from .templates import render_document

logger = logging.getLogger(__name__)

ROOT_DOCUMENT = "index.md"


def document_path(path: str) -> str:
    """Markdown location of a node, relative to the markdown root.

    Every node maps to ``<path>.md``, so a folder's page sits beside the
    directory holding its children's pages. The root maps to ``index.md``.
    """
    return f"{path}.md" if path else ROOT_DOCUMENT


def _parent_path(path: str) -> str | None:
    if not path:
        return None
    return path.rsplit("/", 1)[0] if "/" in path else ""


@dataclass
class MaterializeResult:
    written: list[Path] = field(default_factory=list)
    omitted: list[str] = field(default_factory=list)


class DocumentMaterializer:
    """Writes one markdown page per completed ProcessingRecord."""

    def __init__(self, store: RecordStore, markdown_root: str | Path, config: dict[str, Any]):
        self.store = store
        self.markdown_root = Path(markdown_root)
        self.config = config
        self.hosted_base = config.get("hosted_docs_url", "").rstrip("/") if config.get("link_hosted") else ""

    def materialize(self) -> MaterializeResult:
        """Rebuild the markdown tree from scratch.

        Records that are missing or not ``done`` produce no page; they are
        logged and reported as omitted, and links to them are dropped.
        """
        result = MaterializeResult()
        records = {(r.path, r.kind): r for r in self.store.iter_records()}
        done = {key: r for key, r in records.items() if r.is_done}

        for (path, kind), record in sorted(records.items()):
            if not record.is_done:
                logger.warning(f"Omitting {path or '.'}: record is {record.status.value}")
                result.omitted.append(path or ".")
            if kind is NodeKind.FOLDER:
                for child_path, child_kind in self._child_keys(record):
                    if (child_path, child_kind) not in records:
                        logger.warning(f"Omitting {child_path}: no record found")
                        result.omitted.append(child_path)

        if self.markdown_root.exists():
            shutil.rmtree(self.markdown_root)
        self.markdown_root.mkdir(parents=True)

        claimed: dict[str, str] = {}
        for record in sorted(done.values(), key=lambda r: (r.path, r.kind.value)):
            rel = document_path(record.path)
            if rel in claimed:
                logger.warning(f"Omitting {record.path or '.'}: {rel} already written for {claimed[rel]}")
                result.omitted.append(record.path or ".")
                continue
            claimed[rel] = record.path or "."
            doc = self.build_document(record, done)
            target = self.markdown_root / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(render_document(doc, self._frontmatter(record)), encoding="utf-8")
            result.written.append(target)

        logger.info(f"Wrote {len(result.written)} document(s), omitted {len(result.omitted)}")
        return result

    def build_document(self, record: ProcessingRecord, done: dict[tuple[str, NodeKind], ProcessingRecord]) -> DocumentNode:
        source = document_path(record.path)
        doc = DocumentNode(
            path=record.path,
            kind=record.kind,
            title=self._title(record.path),
            body=record.summary,
            questions=record.questions,
            fingerprint=record.fingerprint,
            source_url=record.url,
        )

        parent = _parent_path(record.path)
        if parent is not None and (parent, NodeKind.FOLDER) in done:
            doc.parent = DocumentLink(self._title(parent), self._href(source, document_path(parent)))

        if record.kind is NodeKind.FOLDER:
            for key in self._child_keys(record):
                if key in done:
                    doc.children.append(DocumentLink(self._title(key[0]), self._href(source, document_path(key[0]))))
        return doc

    @staticmethod
    def _child_keys(record: ProcessingRecord) -> list[tuple[str, NodeKind]]:
        return [(p, NodeKind.FILE) for p in record.files] + [(p, NodeKind.FOLDER) for p in record.folders]

    def _title(self, path: str) -> str:
        return path.rsplit("/", 1)[-1] if path else project_name(self.config)

    def _href(self, source: str, target: str) -> str:
        if self.hosted_base:
            return f"{self.hosted_base}/{target}"
        return posixpath.relpath(target, posixpath.dirname(source) or ".")

    def _frontmatter(self, record: ProcessingRecord) -> dict[str, Any]:
        return {
            "title": self._title(record.path),
            "path": record.path or ".",
            "kind": record.kind.value,
            "fingerprint": record.fingerprint,
            "content_type": self.config.get("content_type", "code"),
            "target_audience": self.config.get("target_audience", "smart developer"),
        }


def materialize(store: RecordStore, markdown_root: str | Path, config: dict[str, Any]) -> MaterializeResult:
    return DocumentMaterializer(store, markdown_root, config).materialize()
