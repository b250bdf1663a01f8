"""Fakes and fixtures shared by the test modules."""

import asyncio
import copy
import re
from pathlib import Path

from autodoc.config import DEFAULT_CONFIG
from autodoc.errors import FatalError, TransientError
from autodoc.generation.llm import LLMClient
from autodoc.storage.base import DEFAULT_COLLECTION, VectorStoreBase
from autodoc.vectors.embedder import Embedder

PATH_RE = re.compile(r"located at `([^`]*)`")


def make_config(root, output, **overrides) -> dict:
    cfg = copy.deepcopy(DEFAULT_CONFIG)
    cfg["root"] = str(root)
    cfg["output"] = str(output)
    cfg["repos"] = [{"name": "demo", "repository_url": "", "branch": "main"}]
    cfg["ignore"] = ["*.md"]
    cfg["generate_questions"] = False
    cfg["scheduling"] = {
        "max_workers": 2,
        "requests_per_minute": 600_000,
        "max_attempts": 3,
        "base_delay": 0.0,
        "max_delay": 0.0,
    }
    cfg.update(overrides)
    return cfg


def write_repo(root: Path, files: dict[str, str | bytes]) -> Path:
    for rel, content in files.items():
        target = root / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            target.write_bytes(content)
        else:
            target.write_text(content)
    return root


class FakeLLM(LLMClient):
    """Answers every prompt with a summary naming the node it was asked about.

    ``transient`` maps a node path to how many times it should fail with a
    TransientError before succeeding; ``fatal`` paths raise FatalError.
    """

    def __init__(self, transient=None, fatal=(), delay=0.0):
        self.transient = dict(transient or {})
        self.fatal = set(fatal)
        self.delay = delay
        self.calls: list[str] = []
        self.prompts: list[str] = []
        self.systems: list[str | None] = []
        self.active = 0
        self.max_active = 0

    async def complete(self, prompt, model, system=None):
        match = PATH_RE.search(prompt)
        path = match.group(1) if match else "?"
        self.calls.append(path)
        self.prompts.append(prompt)
        self.systems.append(system)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delay)
            if path in self.fatal:
                raise FatalError(f"bad credentials while summarizing {path}")
            if self.transient.get(path, 0) > 0:
                self.transient[path] -= 1
                raise TransientError(f"rate limited on {path}")
            return f"Summary of {path}"
        finally:
            self.active -= 1


class FakeEmbedder(Embedder):
    """Deterministic two-dimensional embeddings; chunks containing ``fail_on`` never embed."""

    def __init__(self, fail_on=None, fatal_on=None, max_input_chars=None):
        self.fail_on = fail_on
        self.fatal_on = fatal_on
        self.max_input_chars = max_input_chars
        self.calls = 0
        self.texts = []

    def encode(self, text, is_query=False):
        return [float(len(text)), 1.0]

    async def embed(self, text):
        self.calls += 1
        self.texts.append(text)
        if self.fatal_on and self.fatal_on in text:
            raise FatalError("embedding model unavailable")
        if self.fail_on and self.fail_on in text:
            raise TransientError("embedding service timed out")
        return self.encode(text)


class FakeVectorStore(VectorStoreBase):
    """In-memory vector store that returns documents in insertion order."""

    def __init__(self):
        self.collections: dict[str, dict[str, tuple]] = {}
        self.resets = 0

    def add_documents(self, collection_name, ids, embeddings, documents, metadatas=None):
        coll = self.collections.setdefault(collection_name, {})
        for i, doc_id in enumerate(ids):
            coll[doc_id] = (embeddings[i], documents[i], (metadatas or [{}] * len(ids))[i])

    def query(self, collection_name, query_embedding, n_results=10):
        items = list(self.collections.get(collection_name, {}).items())[:n_results]
        return {
            "ids": [[k for k, _ in items]],
            "documents": [[v[1] for _, v in items]],
            "metadatas": [[v[2] for _, v in items]],
            "distances": [[0.1 * i for i in range(len(items))]],
        }

    def count(self, collection_name=DEFAULT_COLLECTION):
        return len(self.collections.get(collection_name, {}))

    def reset(self, collection_name=DEFAULT_COLLECTION):
        self.resets += 1
        self.collections.pop(collection_name, None)
