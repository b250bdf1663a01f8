"""Line-boundary splitting of file content to fit the model input budget."""

from ..errors import TooLargeError

CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    """Rough token estimate (~4 chars per token)."""
    return len(text) // CHARS_PER_TOKEN


def split_content(
    text: str,
    max_tokens: int = 3000,
    min_tokens: int = 200,
    budget_tokens: int | None = None,
) -> list[str]:
    """Split text on line boundaries into chunks of about ``max_tokens``.

    A chunk is only closed once it holds at least ``min_tokens``, so every
    chunk but the last meets the minimum. ``budget_tokens`` is the hard
    ceiling of the model input; a chunk still above it (e.g. one enormous
    line) raises TooLargeError.

    Args:
        text: The file content.
        max_tokens: Target chunk size.
        min_tokens: Minimum size of every chunk except the final one.
        budget_tokens: Hard limit per chunk, defaults to ``max_tokens``.

    Returns:
        List of chunks whose concatenation equals ``text``.
    """
    budget = budget_tokens if budget_tokens is not None else max_tokens
    if estimate_tokens(text) <= max_tokens:
        chunks = [text] if text else []
    else:
        max_chars = max_tokens * CHARS_PER_TOKEN
        min_chars = min_tokens * CHARS_PER_TOKEN
        chunks = []
        current = ""
        for line in text.splitlines(keepends=True):
            if current and len(current) + len(line) > max_chars and len(current) >= min_chars:
                chunks.append(current)
                current = ""
            current += line
        if current:
            chunks.append(current)

    for i, chunk in enumerate(chunks):
        if estimate_tokens(chunk) > budget:
            raise TooLargeError(
                f"Chunk {i} is ~{estimate_tokens(chunk)} tokens, above the input budget of {budget}"
            )
    return chunks
