"""Semantic search over the generated documentation."""

from typing import Any

from ..config import output_dirs
from ..storage.base import DEFAULT_COLLECTION, VectorStoreBase, get_vector_store
from .embedder import Embedder, SentenceTransformerEmbedder


def semantic_search(
    query: str,
    config: dict[str, Any],
    n_results: int = 10,
    *,
    embedder: Embedder | None = None,
    store: VectorStoreBase | None = None,
) -> list[dict]:
    """Run a semantic search query.

    Args:
        query: Natural language search query.
        config: Application config.
        n_results: Number of results to return.

    Returns:
        List of result dicts with document, metadata, and distance.
    """
    store = store or get_vector_store(config, output_dirs(config)["data"])
    if store.count(DEFAULT_COLLECTION) == 0:
        return []
    embedder = embedder or SentenceTransformerEmbedder(config)

    raw = store.query(DEFAULT_COLLECTION, embedder.encode(query, is_query=True), n_results=n_results)
    results = []
    for i in range(len(raw["ids"][0])):
        results.append({
            "id": raw["ids"][0][i],
            "document": raw["documents"][0][i],
            "metadata": raw["metadatas"][0][i],
            "distance": raw["distances"][0][i],
        })
    return results
