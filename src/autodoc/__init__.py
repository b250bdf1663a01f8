"""autodoc - LLM-generated documentation and semantic search for code repositories."""

__version__ = "0.1.0"
