# ============================================================================
# File: pipeline/runner.py
# Description: Version-gated sync orchestrator with scoped resource lifecycle
# ============================================================================
"""
Sync Runner - Orchestrates gate, fetch, card upsert and image rehosting.

This module provides:
- SyncPipeline: one gate decision, one catalog fetch, two independent tracks
- ImageTransferJob: resolve images, build tasks, drive the scheduler
- run_sync / run_seed: entry points that build every collaborator explicitly
  and release each exactly once, including on the "nothing to do" path
"""

from contextlib import AsyncExitStack
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional
import logging

from core.config import Settings
from core.database import create_engine, create_session_maker
from core.storage import S3ObjectStore
from pipeline.analytics import RunAnalytics
from pipeline.assets import AssetResolver
from pipeline.extractors.ygoprodeck import YGOProDeckClient
from pipeline.loaders.postgres_loader import CardLoader, PostgresStore
from pipeline.seeders import StaticSeeder
from pipeline.transfer import DedupTransfer, TransferScheduler
from pipeline.version_gate import VersionGate

logger = logging.getLogger(__name__)


@dataclass
class SyncReport:
    """
    Result of one sync invocation.

    Attributes:
        ran: False when the stored version already matched the remote one
        version: Remote dataset version seen by the gate
        cards: Counters of the card track
        images: Counters of the image track
    """

    ran: bool
    version: Optional[str]
    cards: RunAnalytics
    images: RunAnalytics


class ImageTransferJob:
    """The image track: catalog -> references -> batched deduplicating transfer"""

    def __init__(self, resolver: AssetResolver, transfer: DedupTransfer, scheduler: TransferScheduler):
        self.resolver = resolver
        self.transfer = transfer
        self.scheduler = scheduler

    @property
    def analytics(self) -> RunAnalytics:
        return self.transfer.analytics

    async def run(self, cards) -> RunAnalytics:
        references = self.resolver.references(cards)
        tasks = self.transfer.tasks_for(references)
        summary = await self.scheduler.run(tasks)
        logger.info(
            f"Image transfer finished: {summary.batches} batches, {summary.pauses} pauses, "
            f"{summary.failed_batches} batches with errors"
        )
        return self.analytics


class SyncPipeline:
    """
    Version-gated synchronization.

    Flow:
    1. Gate - stop early when the remote version is unchanged
    2. Fetch - pull the full catalog once
    3. Cards - upsert every card (skipped when no loader is given)
    4. Images - rehost every image variant (skipped when no job is given)

    Fatal errors (gate, fetch) propagate; per-item failures are absorbed
    by the loader and the transfer and only show up in the analytics.
    """

    def __init__(
        self,
        gate: VersionGate,
        source,
        card_loader: Optional[CardLoader] = None,
        image_transfer: Optional[ImageTransferJob] = None
    ):
        self.gate = gate
        self.source = source
        self.card_loader = card_loader
        self.image_transfer = image_transfer

    async def run(self) -> SyncReport:
        report = SyncReport(
            ran=False,
            version=None,
            cards=RunAnalytics(name="cards"),
            images=self.image_transfer.analytics if self.image_transfer else RunAnalytics(name="images"),
        )

        try:
            # --------------------------------------------------
            # PHASE 1: VERSION GATE
            # --------------------------------------------------
            should_run = await self.gate.should_run()
            report.version = self.gate.remote_version

            if not should_run:
                logger.info("Card database is up to date, nothing to sync")
                return report

            report.ran = True

            # --------------------------------------------------
            # PHASE 2: FETCH CATALOG
            # --------------------------------------------------
            cards = await self.source.fetch_cards()

            # --------------------------------------------------
            # PHASE 3: CARD TRACK
            # --------------------------------------------------
            if self.card_loader:
                await self.card_loader.load(cards, report.cards)

            # --------------------------------------------------
            # PHASE 4: IMAGE TRACK
            # --------------------------------------------------
            if self.image_transfer:
                await self.image_transfer.run(cards)

            return report

        finally:
            if report.ran:
                report.cards.report()
                report.images.report()


def build_image_transfer(settings: Settings, store, downloader) -> ImageTransferJob:
    """Wire the image track from settings"""
    analytics = RunAnalytics(name="images")
    return ImageTransferJob(
        resolver=AssetResolver(settings.IMAGE_VARIANTS),
        transfer=DedupTransfer(
            store=store,
            downloader=downloader,
            analytics=analytics,
            staging_dir=Path(settings.STAGING_DIR),
            category=settings.IMAGE_CATEGORY,
            content_type=settings.IMAGE_CONTENT_TYPE,
        ),
        scheduler=TransferScheduler(
            batch_size=settings.IMAGE_BATCH_SIZE,
            pause_ms=settings.IMAGE_BATCH_PAUSE_MS,
        ),
    )


def build_source(settings: Settings) -> YGOProDeckClient:
    return YGOProDeckClient(
        base_url=settings.YGOPRODECK_BASE_URL,
        max_retries=settings.MAX_RETRIES,
        retry_delay=settings.RETRY_DELAY,
        timeout=settings.HTTP_TIMEOUT,
        download_timeout=settings.DOWNLOAD_TIMEOUT,
    )


async def run_sync(settings: Settings, sync_cards: bool = True, sync_images: bool = True) -> SyncReport:
    """
    Run one sync with every resource scoped to this call.

    The engine, the session, the HTTP client and the S3 client are
    created here, injected into the pipeline and released exactly once
    whatever the outcome.

    Args:
        settings: Application settings
        sync_cards: Run the card track
        sync_images: Run the image track

    Raises:
        VersionGateError, ExtractionError: On fatal errors
    """
    engine = create_engine(settings.database_url, echo=settings.SQL_ECHO)
    try:
        async with AsyncExitStack() as stack:
            source = await stack.enter_async_context(build_source(settings))

            image_transfer = None
            if sync_images:
                object_store = S3ObjectStore(
                    bucket=settings.S3_BUCKET,
                    region=settings.AWS_REGION,
                    endpoint_url=settings.S3_ENDPOINT_URL,
                    timeout=settings.HTTP_TIMEOUT,
                )
                stack.callback(object_store.close)
                image_transfer = build_image_transfer(settings, object_store, source)

            session = await stack.enter_async_context(create_session_maker(engine)())
            store = PostgresStore(session)

            pipeline = SyncPipeline(
                gate=VersionGate(store, source),
                source=source,
                card_loader=CardLoader(store) if sync_cards else None,
                image_transfer=image_transfer,
            )
            return await pipeline.run()
    finally:
        await engine.dispose()
        logger.debug("Database engine disposed")


async def run_seed(settings: Settings) -> Dict[str, RunAnalytics]:
    """
    Seed binder images, avatars and tags.

    Raises:
        ExtractionError: If the archetype list cannot be fetched
    """
    engine = create_engine(settings.database_url, echo=settings.SQL_ECHO)
    results: Dict[str, RunAnalytics] = {}
    try:
        async with build_source(settings) as source:
            seeder = StaticSeeder(
                session_maker=create_session_maker(engine),
                scheduler=TransferScheduler(batch_size=settings.SEED_BATCH_SIZE),
            )
            results["binder_images"] = await seeder.seed_binders()
            results["avatars"] = await seeder.seed_avatars()
            results["tags"] = await seeder.seed_tags(source)
        return results
    finally:
        for analytics in results.values():
            analytics.report()
        await engine.dispose()
