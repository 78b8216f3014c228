"""
Run-scoped counters for one sync track.

An instance is created per run and passed explicitly into the loader and
the transfer components. Concurrent transfers run as coroutines on a
single event loop and only touch the counters between awaits, so the
loop is the single aggregation point and increments are never lost.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List
import logging

logger = logging.getLogger(__name__)


@dataclass
class RunAnalytics:
    """
    Counters and failed identifiers for one track of a run.

    Attributes:
        name: Track label used in log lines ("cards", "images", ...)
        total: Items attempted (or expected, for the card track)
        processed: Items written (upserted rows, uploaded objects)
        skipped: Items already present at the destination
        failed: Items that raised and were contained
        failed_items: Identifiers of failed items, in failure order
        progress_every: Log an INFO progress line every N finished items
    """

    name: str
    total: int = 0
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    failed_items: List[str] = field(default_factory=list)
    progress_every: int = 500

    @property
    def finished(self) -> int:
        return self.processed + self.skipped + self.failed

    def record_processed(self, identifier: str = ""):
        self.processed += 1
        self._progress(identifier)

    def record_skipped(self, identifier: str = ""):
        self.skipped += 1
        self._progress(identifier)

    def record_failed(self, identifier: str):
        self.failed += 1
        self.failed_items.append(identifier)
        self._progress(identifier)

    def _progress(self, identifier: str):
        logger.debug(f"[{self.name}] {self.finished}/{self.total or '?'} {identifier}")
        if self.progress_every and self.finished % self.progress_every == 0:
            logger.info(f"[{self.name}] Progress: {self.finished}/{self.total or '?'}")

    def snapshot(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "processed": self.processed,
            "skipped": self.skipped,
            "failed": self.failed,
            "failed_items": list(self.failed_items),
        }

    def report(self) -> Dict[str, Any]:
        """Log the final snapshot and return it"""
        snapshot = self.snapshot()
        logger.info(
            f"[{self.name}] Total: {self.total}, Processed: {self.processed}, "
            f"Skipped: {self.skipped}, Failed: {self.failed}"
        )
        if self.failed_items:
            logger.warning(f"[{self.name}] Failed items: {self.failed_items}")
        return snapshot
