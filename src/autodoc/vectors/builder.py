"""Chunk materialized documents, embed them, and persist the vector index."""

import asyncio
import hashlib
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..docs.templates import split_frontmatter
from ..errors import EmbeddingError
from ..models import Chunk
from ..scheduling.cancel import CancelToken, RunCancelled
from ..scheduling.ratelimit import RateLimiter
from ..scheduling.retry import RetryPolicy, call_with_retry
from ..storage.base import DEFAULT_COLLECTION, VectorStoreBase
from .chunker import window_text
from .embedder import Embedder

logger = logging.getLogger(__name__)

CHUNKS_FILE = "chunks.json"
FAILURES_FILE = "failures.json"
STORE_BATCH_SIZE = 256


@dataclass
class SourceDocument:
    """A materialized markdown page as read back from disk."""
    path: str
    text: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class IndexResult:
    documents: int = 0
    embedded: int = 0
    failed: list[str] = field(default_factory=list)


def load_documents(markdown_root: str | Path) -> list[SourceDocument]:
    """Read every markdown page, separating frontmatter from the body."""
    root = Path(markdown_root)
    docs = []
    for md_file in sorted(root.rglob("*.md")):
        frontmatter, body = split_frontmatter(md_file.read_text(encoding="utf-8", errors="replace"))
        docs.append(SourceDocument(md_file.relative_to(root).as_posix(), body, frontmatter))
    return docs


def chunk_id(chunk: Chunk) -> str:
    return hashlib.sha256(f"{chunk.source}:{chunk.index}:{chunk.text}".encode("utf-8")).hexdigest()[:32]


class IndexBuilder:
    """Builds the searchable index from scratch on every run.

    A chunk whose embedding fails after all retries is logged and listed in
    ``failures.json``; the remaining chunks are still indexed.
    """

    def __init__(
        self,
        embedder: Embedder,
        store: VectorStoreBase,
        data_dir: str | Path,
        config: dict[str, Any],
        *,
        policy: RetryPolicy | None = None,
        limiter: RateLimiter | None = None,
        collection: str = DEFAULT_COLLECTION,
    ):
        self.embedder = embedder
        self.store = store
        self.data_dir = Path(data_dir)
        self.config = config
        self.policy = policy or RetryPolicy.from_config(config)
        self.limiter = limiter
        self.collection = collection
        self.workers = config.get("scheduling", {}).get("max_workers", 4)
        indexing = config.get("indexing", {})
        self.max_chars = indexing.get("max_chars", 1000)
        self.overlap = indexing.get("overlap_chars", 100)

    def window_size(self) -> tuple[int, int]:
        """Window length and overlap, capped by what the embedder reads."""
        max_chars = self.max_chars
        limit = self.embedder.max_input_chars
        if limit is not None and limit < max_chars:
            logger.info(f"Embedding model reads at most {limit} chars; shrinking windows from {max_chars}")
            max_chars = max(limit, 1)
        overlap = self.overlap if self.overlap < max_chars else max_chars // 10
        return max_chars, overlap

    def chunk_documents(self, documents: list[SourceDocument]) -> list[Chunk]:
        max_chars, overlap = self.window_size()
        chunks = []
        for doc in documents:
            for i, window in enumerate(window_text(doc.text, max_chars, overlap)):
                chunks.append(Chunk(
                    source=doc.path,
                    index=i,
                    text=window.text,
                    start=window.start,
                    end=window.end,
                    metadata={
                        "source": doc.path,
                        "title": str(doc.metadata.get("title", doc.path)),
                        "node_path": str(doc.metadata.get("path", "")),
                        "kind": str(doc.metadata.get("kind", "")),
                        "chunk_index": i,
                        "content_type": str(doc.metadata.get("content_type", self.config.get("content_type", "code"))),
                        "target_audience": str(
                            doc.metadata.get("target_audience", self.config.get("target_audience", ""))
                        ),
                    },
                ))
        return chunks

    async def build(self, documents: list[SourceDocument]) -> IndexResult:
        """Replace the index with the chunks of ``documents``."""
        result = IndexResult(documents=len(documents))
        chunks = self.chunk_documents(documents)
        limit = self.embedder.max_input_chars
        cancel = CancelToken()
        semaphore = asyncio.Semaphore(self.workers)
        failures: list[dict[str, Any]] = []

        async def embed_one(chunk: Chunk) -> None:
            async with semaphore:
                try:
                    if limit is not None and len(chunk.text) > limit:
                        raise EmbeddingError(f"chunk has {len(chunk.text)} chars, model reads at most {limit}")
                    chunk.embedding = await call_with_retry(
                        lambda: self.embedder.embed(chunk.text),
                        self.policy,
                        limiter=self.limiter,
                        cancel=cancel,
                        label=f"embed {chunk.source}#{chunk.index}",
                        error_cls=EmbeddingError,
                    )
                except EmbeddingError as e:
                    logger.warning(f"Skipping chunk {chunk.source}#{chunk.index}: {e}")
                    result.failed.append(f"{chunk.source}#{chunk.index}")
                    failures.append({"source": chunk.source, "index": chunk.index, "error": str(e)})
                except RunCancelled:
                    raise
                except Exception as e:
                    cancel.cancel(e)
                    raise

        outcomes = await asyncio.gather(*(embed_one(c) for c in chunks), return_exceptions=True)
        errors = [o for o in outcomes if isinstance(o, BaseException)]
        if errors:
            raise next((e for e in errors if not isinstance(e, RunCancelled)), errors[0])

        embedded = [c for c in chunks if c.embedding is not None]
        self.store.reset(self.collection)
        for i in range(0, len(embedded), STORE_BATCH_SIZE):
            batch = embedded[i:i + STORE_BATCH_SIZE]
            self.store.add_documents(
                collection_name=self.collection,
                ids=[chunk_id(c) for c in batch],
                embeddings=[c.embedding for c in batch],
                documents=[c.text for c in batch],
                metadatas=[c.metadata for c in batch],
            )
        result.embedded = len(embedded)
        self._write_metadata(embedded, failures)

        logger.info(
            f"Indexed {result.embedded} chunk(s) from {result.documents} document(s), {len(result.failed)} failed"
        )
        return result

    def _write_metadata(self, chunks: list[Chunk], failures: list[dict[str, Any]]) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        rows = [
            {"id": chunk_id(c), "source": c.source, "index": c.index, "start": c.start, "end": c.end,
             "metadata": c.metadata}
            for c in chunks
        ]
        (self.data_dir / CHUNKS_FILE).write_text(json.dumps(rows, indent=2, ensure_ascii=False), encoding="utf-8")
        (self.data_dir / FAILURES_FILE).write_text(
            json.dumps(failures, indent=2, ensure_ascii=False), encoding="utf-8"
        )
