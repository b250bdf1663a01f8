"""Text embedding using sentence-transformers."""

import asyncio
from abc import ABC, abstractmethod
from typing import Any

import numpy as np

from ..errors import EmbeddingError, FatalError
from ..generation.splitter import CHARS_PER_TOKEN


class Embedder(ABC):
    """Maps text to a fixed-length vector."""

    # Longest text the model reads without truncating; None means unbounded.
    max_input_chars: int | None = None

    @abstractmethod
    def encode(self, text: str, is_query: bool = False) -> list[float]:
        """Embed one text synchronously."""

    async def embed(self, text: str) -> list[float]:
        """Embed a document chunk without blocking the event loop."""
        return await asyncio.to_thread(self.encode, text)


class SentenceTransformerEmbedder(Embedder):
    """Embeds text with a local sentence-transformers model."""

    def __init__(self, config: dict[str, Any]):
        self.model_name = config.get("embedding_model", "sentence-transformers/all-MiniLM-L6-v2")
        self._model = None

    @property
    def model(self):
        """Lazy-load the embedding model."""
        if self._model is None:
            from sentence_transformers import SentenceTransformer
            try:
                self._model = SentenceTransformer(self.model_name)
            except OSError as e:
                raise FatalError(f"Could not load embedding model {self.model_name}: {e}") from e
        return self._model

    @property
    def max_input_chars(self) -> int | None:
        seq_length = getattr(self.model, "max_seq_length", None)
        if not seq_length:
            return None
        return seq_length * CHARS_PER_TOKEN - len(self._prefix(False))

    def _prefix(self, is_query: bool) -> str:
        # e5 models need "query: " / "passage: " prefixes
        if "e5" not in self.model_name.lower():
            return ""
        return "query: " if is_query else "passage: "

    def encode(self, text: str, is_query: bool = False) -> list[float]:
        model = self.model
        try:
            vector = model.encode(self._prefix(is_query) + text, normalize_embeddings=True)
        except (RuntimeError, ValueError) as e:
            raise EmbeddingError(f"Embedding failed: {e}") from e
        return np.asarray(vector, dtype="float32").tolist()
