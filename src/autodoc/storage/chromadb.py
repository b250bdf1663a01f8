"""ChromaDB vector store backend."""

from pathlib import Path
from typing import Any

import chromadb

from .base import DEFAULT_COLLECTION, VectorStoreBase


class ChromaVectorStore(VectorStoreBase):
    """ChromaDB-backed persistent vector store."""

    def __init__(self, chroma_path: str | Path):
        self.chroma_path = Path(chroma_path)
        self.chroma_path.mkdir(parents=True, exist_ok=True)
        self.client = chromadb.PersistentClient(path=str(self.chroma_path))

    def get_or_create_collection(self, name: str = DEFAULT_COLLECTION) -> chromadb.Collection:
        # Embeddings are always supplied by the caller.
        return self.client.get_or_create_collection(
            name=name,
            metadata={"hnsw:space": "cosine"},
            embedding_function=None,
        )

    def add_documents(
        self,
        collection_name: str,
        ids: list[str],
        embeddings: list[list[float]],
        documents: list[str],
        metadatas: list[dict[str, Any]] | None = None,
    ) -> None:
        collection = self.get_or_create_collection(collection_name)
        collection.upsert(ids=ids, embeddings=embeddings, documents=documents, metadatas=metadatas)

    def query(
        self,
        collection_name: str,
        query_embedding: list[float],
        n_results: int = 10,
    ) -> dict[str, Any]:
        collection = self.get_or_create_collection(collection_name)
        return collection.query(
            query_embeddings=[query_embedding],
            n_results=n_results,
            include=["documents", "metadatas", "distances"],
        )

    def count(self, collection_name: str = DEFAULT_COLLECTION) -> int:
        collection = self.get_or_create_collection(collection_name)
        return collection.count()

    def reset(self, collection_name: str = DEFAULT_COLLECTION) -> None:
        existing = {c if isinstance(c, str) else c.name for c in self.client.list_collections()}
        if collection_name in existing:
            self.client.delete_collection(collection_name)
