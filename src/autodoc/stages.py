"""The three pipeline stages and the full index run."""

import asyncio
import logging
from pathlib import Path
from typing import Any

from .config import output_dirs
from .docs.materializer import MaterializeResult, materialize
from .errors import IncompleteTreeError
from .generation.llm import AnthropicClient, LLMClient
from .generation.processor import NodeProcessor
from .models import RunSummary
from .repo.accessor import LocalRepoAccessor, RepoAccessor
from .repo.crawler import crawl
from .scheduling.ratelimit import RateLimiter
from .scheduling.scheduler import build_scheduler
from .storage.base import VectorStoreBase, get_vector_store
from .storage.records import RecordStore
from .vectors.builder import IndexBuilder, IndexResult, load_documents
from .vectors.embedder import Embedder, SentenceTransformerEmbedder

logger = logging.getLogger(__name__)


def _limiter(config: dict[str, Any]) -> RateLimiter:
    return RateLimiter.per_minute(config["scheduling"]["requests_per_minute"])


def process_repository(
    config: dict[str, Any],
    *,
    llm: LLMClient | None = None,
    accessor: RepoAccessor | None = None,
    force: bool = False,
) -> RunSummary:
    """Summarize every file and folder under ``root`` into JSON records.

    Raises:
        IncompleteTreeError: some nodes failed or are blocked; their
            records are persisted and the summary is attached.
        FatalError: the run was aborted.
    """
    root = Path(config["root"]).expanduser()
    accessor = accessor or LocalRepoAccessor(root)
    tree = crawl(root, config["ignore"], accessor)
    logger.info(f"Found {sum(1 for _ in tree.walk())} node(s) under {root}")

    processor = NodeProcessor(llm or AnthropicClient(config), config, limiter=_limiter(config))
    store = RecordStore(output_dirs(config)["json"])
    scheduler = build_scheduler(config, processor, store, accessor, force=force)

    summary = asyncio.run(scheduler.run(tree))
    if not summary.complete:
        raise IncompleteTreeError(summary)
    return summary


def convert_json_to_markdown(config: dict[str, Any]) -> MaterializeResult:
    """Render the persisted records as a linked markdown tree."""
    dirs = output_dirs(config)
    return materialize(RecordStore(dirs["json"]), dirs["markdown"], config)


def create_vector_store(
    config: dict[str, Any],
    *,
    embedder: Embedder | None = None,
    store: VectorStoreBase | None = None,
) -> IndexResult:
    """Chunk and embed the markdown tree, replacing the previous index."""
    dirs = output_dirs(config)
    documents = load_documents(dirs["markdown"])
    rpm = config.get("indexing", {}).get("requests_per_minute", 0)
    builder = IndexBuilder(
        embedder or SentenceTransformerEmbedder(config),
        store or get_vector_store(config, dirs["data"]),
        dirs["data"],
        config,
        limiter=RateLimiter.per_minute(rpm) if rpm > 0 else None,
    )
    return asyncio.run(builder.build(documents))


def index(
    config: dict[str, Any],
    *,
    llm: LLMClient | None = None,
    accessor: RepoAccessor | None = None,
    embedder: Embedder | None = None,
    store: VectorStoreBase | None = None,
    force: bool = False,
) -> tuple[RunSummary, MaterializeResult, IndexResult]:
    """Run all three stages.

    An incomplete tree does not stop the later stages; whatever finished
    is still documented and indexed, and the IncompleteTreeError is raised
    afterwards with the documents and vectors results attached.
    """
    incomplete: IncompleteTreeError | None = None
    try:
        summary = process_repository(config, llm=llm, accessor=accessor, force=force)
    except IncompleteTreeError as e:
        logger.warning(str(e))
        incomplete = e
        summary = e.summary

    docs = convert_json_to_markdown(config)
    vectors = create_vector_store(config, embedder=embedder, store=store)

    if incomplete is not None:
        incomplete.documents = docs
        incomplete.vectors = vectors
        raise incomplete
    return summary, docs, vectors
