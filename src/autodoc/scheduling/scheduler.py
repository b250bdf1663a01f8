"""Bottom-up, resumable execution of the node processor over a repository tree."""

import asyncio
import hashlib
import json
import logging
from typing import Any, Callable

from ..config import source_url
from ..errors import AccessError, GenerationError, TooLargeError
from ..generation.processor import NodeProcessor
from ..models import NodeKind, NodeStatus, ProcessingRecord, RepoNode, RunSummary
from ..repo.accessor import RepoAccessor
from ..storage.records import RecordStore
from .cancel import CancelToken, RunCancelled

logger = logging.getLogger(__name__)

BINARY_SNIFF_BYTES = 8192


def file_fingerprint(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def folder_fingerprint(children: list[ProcessingRecord]) -> str:
    """Hash of each child's identity, fingerprint and summary.

    Any change below a folder (content, additions, deletions) changes the
    fingerprint of every folder above it.
    """
    payload = [[c.path, c.kind.value, c.fingerprint, c.summary] for c in children]
    return hashlib.sha256(json.dumps(payload, ensure_ascii=False).encode("utf-8")).hexdigest()


def is_binary(data: bytes) -> bool:
    return b"\0" in data[:BINARY_SNIFF_BYTES]


class PipelineScheduler:
    """Runs a NodeProcessor over every node, children before parents.

    Independent nodes run concurrently up to ``workers`` at a time. Each
    record transition is written to the store as it happens, so an
    interrupted run resumes from the last durable state. A node whose
    stored record is ``done`` with a matching fingerprint is reused without
    calling the model.
    """

    def __init__(
        self,
        processor: NodeProcessor,
        store: RecordStore,
        accessor: RepoAccessor,
        *,
        workers: int = 4,
        force: bool = False,
        url_for: Callable[[RepoNode], str | None] | None = None,
    ):
        self.processor = processor
        self.store = store
        self.accessor = accessor
        self.workers = workers
        self.force = force
        self.url_for = url_for or (lambda node: None)

    async def run(self, tree: RepoNode) -> RunSummary:
        """Process the whole tree and return what happened to each node.

        Raises:
            FatalError: a non-retryable error aborted the run; in-flight and
                queued work was cancelled.
        """
        self.summary = RunSummary()
        self.cancel = CancelToken()
        self._semaphore = asyncio.Semaphore(self.workers)
        self._excluded: set[str] = set()

        try:
            await self._visit(tree)
        except RunCancelled:
            reason = self.cancel.reason
            if isinstance(reason, Exception):
                raise reason
            raise

        keep = {(n.path, n.kind) for n in tree.walk() if n.path not in self._excluded}
        for removed in self.store.prune(keep):
            logger.info(f"Removed stale record {removed}")

        logger.info(
            f"Run finished: {len(self.summary.processed)} processed, {len(self.summary.skipped)} skipped, "
            f"{len(self.summary.failed)} failed, {len(self.summary.blocked)} blocked"
        )
        return self.summary

    async def _visit(self, node: RepoNode) -> ProcessingRecord | None:
        """Resolve a node to its terminal record, or None if it has nothing to document."""
        if not node.is_folder:
            return await self._guarded(self._process_file(node))

        results = await asyncio.gather(*(self._visit(c) for c in node.children), return_exceptions=True)
        errors = [r for r in results if isinstance(r, BaseException)]
        if errors:
            # Prefer the root cause over the RunCancelled it triggered elsewhere.
            raise next((e for e in errors if not isinstance(e, RunCancelled)), errors[0])

        by_path = {r.path: r for r in results if r is not None}
        children = [by_path[c.path] for c in node.ordered_children() if c.path in by_path]
        if not children:
            self._excluded.add(node.path)
            return None

        if any(not c.is_done for c in children):
            return self._block(node, children)
        return await self._guarded(self._process(node, folder_fingerprint(children), child_records=children))

    async def _guarded(self, aw):
        try:
            return await aw
        except RunCancelled:
            raise
        except Exception as e:
            # Fatal or unexpected: stop every other branch too.
            self.cancel.cancel(e)
            raise

    async def _process_file(self, node: RepoNode) -> ProcessingRecord | None:
        try:
            data = self.accessor.read_bytes(node.path)
        except OSError as e:
            return self._fail(self._new_record(node, ""), AccessError(f"Cannot read {node.path}: {e}"))

        if is_binary(data):
            logger.debug(f"Skipping binary file {node.path}")
            self.summary.binary.append(node.path)
            self._excluded.add(node.path)
            return None

        content = data.decode("utf-8", errors="replace")
        return await self._process(node, file_fingerprint(data), content=content)

    async def _process(
        self,
        node: RepoNode,
        fingerprint: str,
        content: str | None = None,
        child_records: list[ProcessingRecord] | None = None,
    ) -> ProcessingRecord:
        existing = self.store.load(node.path, node.kind)
        if (
            not self.force
            and existing is not None
            and existing.is_done
            and existing.fingerprint == fingerprint
        ):
            logger.debug(f"Unchanged, reusing summary for {node.display_path}")
            self.summary.skipped.append(node.display_path)
            return existing

        record = self._new_record(node, fingerprint, existing)
        if child_records is not None:
            record.files = [c.path for c in child_records if c.kind is NodeKind.FILE]
            record.folders = [c.path for c in child_records if c.kind is NodeKind.FOLDER]

        async with self._semaphore:
            self.cancel.raise_if_cancelled()
            record.transition(NodeStatus.IN_PROGRESS)
            self.store.save(record)
            logger.info(f"Processing {node.display_path}")
            try:
                result = await self.processor.process(
                    node, content=content, child_records=child_records, cancel=self.cancel
                )
            except (GenerationError, TooLargeError) as e:
                record.retry_count = getattr(e, "retries", 0)
                return self._fail(record, e)

        record.summary = result.text
        record.questions = result.questions
        record.model = result.model
        record.retry_count = result.retries
        record.transition(NodeStatus.DONE)
        self.store.save(record)
        self.summary.processed.append(node.display_path)
        return record

    def _new_record(self, node: RepoNode, fingerprint: str, existing: ProcessingRecord | None = None) -> ProcessingRecord:
        record = ProcessingRecord(path=node.path, kind=node.kind, fingerprint=fingerprint, url=self.url_for(node))
        if existing is not None:
            record.created_at = existing.created_at
        return record

    def _fail(self, record: ProcessingRecord, error: Exception) -> ProcessingRecord:
        logger.error(f"Failed {record.path or '.'}: {error}")
        record.transition(NodeStatus.FAILED, str(error))
        self.store.save(record)
        self.summary.failed.append(record.path or ".")
        self.summary.errors[record.path or "."] = str(error)
        return record

    def _block(self, node: RepoNode, children: list[ProcessingRecord]) -> ProcessingRecord:
        """Persist a folder that cannot be summarized because a descendant failed."""
        record = self.store.load(node.path, node.kind) or self._new_record(node, "")
        not_done = [c.path or "." for c in children if not c.is_done]
        record.fingerprint = ""
        record.files = [c.path for c in children if c.kind is NodeKind.FILE]
        record.folders = [c.path for c in children if c.kind is NodeKind.FOLDER]
        record.transition(NodeStatus.BLOCKED, f"Waiting on incomplete children: {', '.join(not_done)}")
        self.store.save(record)
        self.summary.blocked.append(node.display_path)
        logger.warning(f"Blocked {node.display_path}: {record.error}")
        return record


def build_scheduler(
    config: dict[str, Any],
    processor: NodeProcessor,
    store: RecordStore,
    accessor: RepoAccessor,
    force: bool = False,
) -> PipelineScheduler:
    return PipelineScheduler(
        processor,
        store,
        accessor,
        workers=config.get("scheduling", {}).get("max_workers", 4),
        force=force,
        url_for=lambda node: source_url(config, node.path, node.is_folder),
    )
