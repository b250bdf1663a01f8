"""RAG-based Q&A over the generated documentation."""

import asyncio
from typing import Any

from .config import project_name
from .generation.llm import AnthropicClient, LLMClient
from .generation.prompts import CHAT_SYSTEM_PROMPT
from .storage.base import VectorStoreBase
from .vectors.embedder import Embedder
from .vectors.search import semantic_search


def ask_question(
    question: str,
    config: dict[str, Any],
    n_chunks: int = 10,
    *,
    llm: LLMClient | None = None,
    embedder: Embedder | None = None,
    store: VectorStoreBase | None = None,
) -> dict:
    """Answer a question using RAG over the documentation index.

    Returns dict with 'answer' and 'sources' (list of document paths).
    """
    results = semantic_search(question, config, n_results=n_chunks, embedder=embedder, store=store)
    if not results:
        return {"answer": "No relevant documentation found. Have you run 'autodoc index'?", "sources": []}

    # Build context from search results
    context_parts = []
    sources = {}
    for i, r in enumerate(results, 1):
        source = r["metadata"].get("source", "unknown")
        sources[source] = True
        context_parts.append(f"[{i}] {source}:\n{r['document']}")

    context = "\n\n---\n\n".join(context_parts)

    system = CHAT_SYSTEM_PROMPT.format(
        project_name=project_name(config),
        content_type=config.get("content_type", "code"),
        target_audience=config.get("target_audience", "smart developer"),
    )
    if extra := config.get("chat_prompt"):
        system = f"{system}\n{extra}"

    llm = llm or AnthropicClient(config)
    answer = asyncio.run(llm.complete(
        f"Documentation context:\n\n{context}\n\n---\n\nQuestion: {question}",
        config["llms"][0],
        system=system,
    ))

    return {
        "answer": answer.strip(),
        "sources": list(sources.keys()),
    }
