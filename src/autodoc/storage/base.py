"""Abstract base class for vector stores and factory function."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

DEFAULT_COLLECTION = "autodoc"


class VectorStoreBase(ABC):
    """Common interface for vector storage backends."""

    @abstractmethod
    def add_documents(
        self,
        collection_name: str,
        ids: list[str],
        embeddings: list[list[float]],
        documents: list[str],
        metadatas: list[dict[str, Any]] | None = None,
    ) -> None:
        """Add/upsert documents with embeddings."""

    @abstractmethod
    def query(
        self,
        collection_name: str,
        query_embedding: list[float],
        n_results: int = 10,
    ) -> dict[str, Any]:
        """Query by embedding. Returns dict with keys: ids, documents, metadatas, distances.
        Each value is a list of lists (outer list has one element for single query)."""

    @abstractmethod
    def count(self, collection_name: str = DEFAULT_COLLECTION) -> int:
        """Count documents in collection."""

    @abstractmethod
    def reset(self, collection_name: str = DEFAULT_COLLECTION) -> None:
        """Drop every document in the collection."""


def get_vector_store(config: dict[str, Any], data_dir: str | Path) -> VectorStoreBase:
    """Factory: return the right vector store based on config."""
    backend = config.get("storage_backend", "chromadb")

    if backend == "chromadb":
        from .chromadb import ChromaVectorStore
        return ChromaVectorStore(Path(data_dir) / "chroma")
    raise ValueError(f"Unknown storage_backend: {backend}")
