# ============================================================================
# File: pipeline/transfer.py
# Description: Batched concurrent transfer with destination deduplication
# ============================================================================
"""
Transfer scheduling and deduplicating image transfer.

This module provides:
- TransferScheduler: fixed-size, batch-synchronous concurrency with pacing
- DedupTransfer: skip-if-present, else download to staging and upload

Batch model:
    Tasks are split positionally into batches of at most batch_size.
    All tasks of a batch run concurrently; batch k+1 starts only after
    every task of batch k resolved. A pause follows each batch unless
    every task in it reported SKIPPED.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional, Sequence
import asyncio
import enum
import logging

from core.exceptions import SyncException, TransferError
from core.storage import ObjectStore
from pipeline.analytics import RunAnalytics
from pipeline.assets import AssetReference

logger = logging.getLogger(__name__)


class TransferOutcome(str, enum.Enum):
    """Result reported by one task"""
    SKIPPED = "skipped"
    TRANSFERRED = "transferred"
    FAILED = "failed"


@dataclass(frozen=True)
class TransferTask:
    """
    A named unit of work.

    Stateless between invocations and safe to re-run: the action is
    expected to check its destination before writing.
    """

    name: str
    action: Callable[[], Awaitable[TransferOutcome]]

    async def __call__(self) -> TransferOutcome:
        return await self.action()

    def __repr__(self) -> str:
        return f"TransferTask({self.name})"


@dataclass
class BatchSummary:
    """What the scheduler did during one run"""
    batches: int = 0
    pauses: int = 0
    failed_batches: int = 0
    outcomes: Dict[TransferOutcome, int] = field(
        default_factory=lambda: {outcome: 0 for outcome in TransferOutcome}
    )


class TransferScheduler:
    """
    Run independent tasks in fixed-size concurrent batches.

    Guarantees:
    - Never more than batch_size tasks in flight
    - Deterministic, input-ordered batch assignment
    - No pause after an all-skipped batch, pause_ms after any other batch
    - An exception escaping a task is logged with its batch and does not
      stop the remaining batches; sibling tasks still complete
    """

    def __init__(
        self,
        batch_size: int,
        pause_ms: int = 0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.batch_size = self._check_batch_size(batch_size)
        self.pause_ms = self._check_pause(pause_ms)
        self._sleep = sleep

    @staticmethod
    def _check_batch_size(batch_size: int) -> int:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        return batch_size

    @staticmethod
    def _check_pause(pause_ms: int) -> int:
        if pause_ms < 0:
            raise ValueError("pause_ms cannot be negative")
        return pause_ms

    def batches(self, tasks: Sequence[TransferTask], batch_size: Optional[int] = None) -> List[Sequence[TransferTask]]:
        size = self.batch_size if batch_size is None else self._check_batch_size(batch_size)
        return [tasks[i:i + size] for i in range(0, len(tasks), size)]

    async def run(
        self,
        tasks: Sequence[TransferTask],
        batch_size: Optional[int] = None,
        pause_ms: Optional[int] = None
    ) -> BatchSummary:
        """
        Drive all tasks batch by batch.

        Args:
            tasks: Tasks in the order they should be assigned to batches
            batch_size: Override of the configured batch size
            pause_ms: Override of the configured pause between batches

        Returns:
            BatchSummary with batch, pause and outcome counts

        Raises:
            ValueError: If an override is out of range
        """
        pause_ms = self.pause_ms if pause_ms is None else self._check_pause(pause_ms)
        batches = self.batches(tasks, batch_size)
        summary = BatchSummary()

        logger.info(f"Running {len(tasks)} tasks in {len(batches)} batches")

        for index, batch in enumerate(batches):
            summary.batches += 1
            results = await asyncio.gather(*(task() for task in batch), return_exceptions=True)

            errors = [r for r in results if isinstance(r, BaseException)]
            for result in results:
                if isinstance(result, TransferOutcome):
                    summary.outcomes[result] += 1

            if errors:
                summary.failed_batches += 1
                logger.error(
                    f"Something went wrong while processing batch {index + 1}/{len(batches)}: "
                    f"{list(batch)} | errors: {[repr(e) for e in errors]}"
                )

            all_skipped = all(result is TransferOutcome.SKIPPED for result in results)
            is_last = index == len(batches) - 1

            if not all_skipped and not is_last and pause_ms:
                summary.pauses += 1
                await self._sleep(pause_ms / 1000)

        return summary


class DedupTransfer:
    """
    Rehost one image: skip if present at the destination, else
    download to a staging file, upload it and remove the staging file.

    Never raises: every failure is recorded on the analytics and
    reported as TransferOutcome.FAILED.
    """

    def __init__(
        self,
        store: ObjectStore,
        downloader,
        analytics: RunAnalytics,
        staging_dir: Path,
        category: str = "cards",
        content_type: str = "image/jpeg"
    ):
        self.store = store
        self.downloader = downloader
        self.analytics = analytics
        self.staging_dir = Path(staging_dir)
        self.category = category
        self.content_type = content_type

    @asynccontextmanager
    async def staging_file(self, ref: AssetReference):
        """Yield the per-image staging path; it is removed on every exit path"""
        path = ref.staging_path(self.staging_dir)
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            yield path
        finally:
            path.unlink(missing_ok=True)

    async def transfer(self, ref: AssetReference) -> TransferOutcome:
        key = ref.destination_key(self.category)
        self.analytics.total += 1
        try:
            if await self.store.exists(key):
                self.analytics.record_skipped(key)
                return TransferOutcome.SKIPPED

            async with self.staging_file(ref) as local_path:
                try:
                    await self.downloader.download(ref.source_url, local_path)
                except SyncException:
                    raise
                except Exception as e:
                    raise TransferError(
                        "Failed to download image",
                        context={"source_url": ref.source_url, "staging_path": str(local_path)},
                        original_exception=e
                    )
                body = await asyncio.to_thread(local_path.read_bytes)
                await self.store.put(key, body, self.content_type)

            self.analytics.record_processed(key)
            return TransferOutcome.TRANSFERRED

        except Exception as e:
            details = e.to_dict() if isinstance(e, SyncException) else {"error": repr(e)}
            logger.error(
                f"Failed to process image: {ref.source_url}",
                extra={"error_context": details}
            )
            self.analytics.record_failed(ref.source_url)
            return TransferOutcome.FAILED

    def task_for(self, ref: AssetReference) -> TransferTask:
        async def action() -> TransferOutcome:
            return await self.transfer(ref)

        return TransferTask(name=ref.destination_key(self.category), action=action)

    def tasks_for(self, refs: Sequence[AssetReference]) -> List[TransferTask]:
        return [self.task_for(ref) for ref in refs]
