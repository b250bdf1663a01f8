"""Persistence for processing records and vectors."""

from .base import DEFAULT_COLLECTION, VectorStoreBase, get_vector_store
from .records import RecordStore

__all__ = ["DEFAULT_COLLECTION", "RecordStore", "VectorStoreBase", "get_vector_store"]
