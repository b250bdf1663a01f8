"""Summarize one repository node with the language model."""

from typing import Any

from ..config import project_name
from ..errors import GenerationError, TooLargeError
from ..models import NodeKind, ProcessingRecord, RepoNode, Summary
from ..scheduling.cancel import CancelToken
from ..scheduling.ratelimit import RateLimiter
from ..scheduling.retry import RetryPolicy, call_with_retry
from .llm import LLMClient
from .prompts import (
    CONSOLIDATE_PROMPT,
    FILE_SUMMARY_PROMPT,
    FOLDER_SUMMARY_PROMPT,
    QUESTIONS_PROMPT,
    render_children,
)
from .splitter import estimate_tokens, split_content

EMPTY_FILE_SUMMARY = "This file is empty."


class NodeProcessor:
    """Builds prompts for a node and turns model output into a Summary.

    Persistence is not handled here; the scheduler owns the records.
    """

    def __init__(
        self,
        llm: LLMClient,
        config: dict[str, Any],
        policy: RetryPolicy | None = None,
        limiter: RateLimiter | None = None,
    ):
        self.llm = llm
        self.config = config
        self.policy = policy or RetryPolicy.from_config(config)
        self.limiter = limiter
        self.project_name = project_name(config)
        self.llms: list[str] = list(config["llms"])
        self.limits: dict[str, int] = config["model_limits"]
        self.max_output_tokens: int = config.get("max_output_tokens", 1024)
        chunking = config.get("chunking", {})
        self.chunk_max_tokens = chunking.get("max_tokens", 3000)
        self.chunk_min_tokens = chunking.get("min_tokens", 200)

    def select_model(self, prompt: str) -> str:
        """Pick the first preferred model whose input limit fits the prompt."""
        needed = estimate_tokens(prompt) + self.max_output_tokens
        for model in self.llms:
            if needed <= self.limits[model]:
                return model
        raise TooLargeError(
            f"Prompt needs ~{needed} tokens, more than any configured model accepts"
        )

    def _input_budget(self) -> int:
        overhead = estimate_tokens(FILE_SUMMARY_PROMPT + self.config.get("file_prompt", ""))
        return max(self.limits[m] for m in self.llms) - self.max_output_tokens - overhead

    async def process(
        self,
        node: RepoNode,
        content: str | None = None,
        child_records: list[ProcessingRecord] | None = None,
        cancel: CancelToken | None = None,
    ) -> Summary:
        """Summarize a file from its content, or a folder from its children.

        Raises:
            GenerationError: an external call exhausted its retries.
            TooLargeError: the content does not fit any model's input budget.
        """
        retries = 0

        def count_retry(attempt: int, error: Exception) -> None:
            nonlocal retries
            retries += 1

        async def complete(prompt: str, label: str) -> tuple[str, str]:
            model = self.select_model(prompt)
            try:
                text = await call_with_retry(
                    lambda: self.llm.complete(prompt, model),
                    self.policy,
                    limiter=self.limiter,
                    cancel=cancel,
                    label=label,
                    on_retry=count_retry,
                )
            except GenerationError as e:
                e.retries = retries
                raise
            return text.strip(), model

        if node.is_folder:
            text, model = await complete(self._folder_prompt(node, child_records or []), node.display_path)
        else:
            text, model = await self._summarize_file(node, content or "", complete)
            if model is None:
                return Summary(text=text)

        questions = ""
        if self.config.get("generate_questions", True):
            prompt = QUESTIONS_PROMPT.format(
                content_type=self.config.get("content_type", "code"),
                project_name=self.project_name,
                kind="folder" if node.is_folder else "file",
                path=node.display_path,
                target_audience=self.config.get("target_audience", "smart developer"),
                summary=text,
            )
            questions, _ = await complete(prompt, f"{node.display_path} (questions)")

        return Summary(text=text, questions=questions, model=model, retries=retries)

    async def _summarize_file(self, node: RepoNode, content: str, complete) -> tuple[str, str | None]:
        if not content.strip():
            return EMPTY_FILE_SUMMARY, None

        chunks = split_content(
            content,
            max_tokens=self.chunk_max_tokens,
            min_tokens=self.chunk_min_tokens,
            budget_tokens=self._input_budget(),
        )
        content_type = self.config.get("content_type", "code")
        file_prompt = self.config.get("file_prompt", "")

        parts = []
        model = None
        for i, chunk in enumerate(chunks, 1):
            prompt = FILE_SUMMARY_PROMPT.format(
                content_type=content_type,
                project_name=self.project_name,
                path=node.path,
                part=f" (part {i} of {len(chunks)})" if len(chunks) > 1 else "",
                file_prompt=file_prompt,
                content=chunk,
            )
            text, model = await complete(prompt, f"{node.path} [{i}/{len(chunks)}]")
            parts.append(text)

        if len(parts) == 1:
            return parts[0], model

        prompt = CONSOLIDATE_PROMPT.format(
            content_type=content_type,
            project_name=self.project_name,
            path=node.path,
            count=len(parts),
            file_prompt=file_prompt,
            parts="\n\n".join(f"Part {i}:\n{p}" for i, p in enumerate(parts, 1)),
        )
        return await complete(prompt, f"{node.path} (consolidate)")

    def _folder_prompt(self, node: RepoNode, child_records: list[ProcessingRecord]) -> str:
        files = [(r.path, r.summary) for r in child_records if r.kind is NodeKind.FILE]
        folders = [(r.path, r.summary) for r in child_records if r.kind is NodeKind.FOLDER]
        return FOLDER_SUMMARY_PROMPT.format(
            content_type=self.config.get("content_type", "code"),
            project_name=self.project_name,
            path=node.display_path,
            files=render_children(files),
            folders=render_children(folders),
            folder_prompt=self.config.get("folder_prompt", ""),
        )
