"""Error taxonomy for the documentation pipeline."""


class AutodocError(Exception):
    """Base class for all autodoc errors."""


class ConfigError(AutodocError):
    """Configuration is malformed. Fatal at startup."""


class AccessError(AutodocError):
    """Repository content could not be read."""


class TransientError(AutodocError):
    """A retryable failure from an external service (rate limit, timeout)."""


class FatalError(AutodocError):
    """A non-retryable failure that aborts the whole run (e.g. bad credentials)."""


class GenerationError(AutodocError):
    """Summarization failed for a node after exhausting retries."""


class TooLargeError(AutodocError):
    """Content cannot be split to fit within the model input budget."""


class EmbeddingError(AutodocError):
    """Embedding a single chunk failed after exhausting retries."""


class IncompleteTreeError(AutodocError):
    """A run finished but left failed or blocked nodes behind."""

    def __init__(self, summary, documents=None, vectors=None):
        self.summary = summary
        # Filled in by a full index run, which keeps going after the tree stage.
        self.documents = documents
        self.vectors = vectors
        blocked = ", ".join(summary.blocked) or "none"
        failed = ", ".join(summary.failed) or "none"
        super().__init__(
            f"Documentation tree is incomplete: {len(summary.failed)} failed "
            f"({failed}), {len(summary.blocked)} blocked ({blocked})"
        )
