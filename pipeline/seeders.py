"""
Static seed data: binder covers, avatars and deck tags.

Every seed row is one task run through TransferScheduler on its own
session, so a failing row is reported individually instead of hiding
the others.
"""

from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Tuple
import logging

from sqlalchemy.ext.asyncio import async_sessionmaker

from models.seeds import Avatar, BinderImage, Tag
from pipeline.analytics import RunAnalytics
from pipeline.loaders.postgres_loader import PostgresStore
from pipeline.transfer import TransferOutcome, TransferScheduler, TransferTask

logger = logging.getLogger(__name__)


# (object key, artist)
BINDERS: List[Tuple[str, str]] = [
    ("binder.webp", "AI"),
    ("vintage_binder.jpg", "Elina Shepherd/@elinasheph.bsky.social"),
    ("blue_warp.jpg", "Ava James/@avajame.bsky.social"),
]

AVATARS: List[Tuple[str, str]] = []

BASE_TAGS: List[str] = [
    "Interruption",
    "Monster",
    "Spell",
    "Trap",
    "Effect",
    "Normal",
    "Fusion",
    "Ritual",
    "Synchro",
    "Xyz",
    "Pendulum",
    "Link",
    "Continuous",
    "Counter",
    "Quick-Play",
    "Equip",
    "Field",
]


def build_tag_titles(archetypes: Sequence[str]) -> List[str]:
    """Base tags followed by archetype names, deduplicated in first-seen order"""
    return list(dict.fromkeys([*BASE_TAGS, *archetypes]))


class StaticSeeder:
    """
    Insert seed rows that are not present yet.

    Each task reports SKIPPED when the row exists, TRANSFERRED when it
    was inserted and FAILED when the check or insert raised.
    """

    def __init__(self, session_maker: async_sessionmaker, scheduler: TransferScheduler):
        self.session_maker = session_maker
        self.scheduler = scheduler

    def _insert_if_missing(
        self,
        model,
        criteria_factory: Callable[[], object],
        values: Dict[str, str],
        identifier: str,
        analytics: RunAnalytics
    ) -> Callable[[], Awaitable[TransferOutcome]]:
        async def action() -> TransferOutcome:
            analytics.total += 1
            try:
                async with self.session_maker() as session:
                    store = PostgresStore(session)
                    if await store.exists(model, criteria_factory()):
                        analytics.record_skipped(identifier)
                        return TransferOutcome.SKIPPED
                    await store.insert(model, values)
                    await store.commit()
                analytics.record_processed(identifier)
                return TransferOutcome.TRANSFERRED
            except Exception as e:
                logger.error(f"Failed to seed {model.__tablename__} row {identifier}: {e}")
                analytics.record_failed(identifier)
                return TransferOutcome.FAILED

        return action

    async def _run(self, tasks: List[TransferTask], analytics: RunAnalytics) -> RunAnalytics:
        await self.scheduler.run(tasks, pause_ms=0)
        return analytics

    async def seed_images(
        self,
        model,
        rows: Sequence[Tuple[str, str]],
        analytics: Optional[RunAnalytics] = None
    ) -> RunAnalytics:
        """Seed (s3_key, artist) rows into an image table"""
        analytics = analytics or RunAnalytics(name=model.__tablename__)
        tasks = [
            TransferTask(
                name=s3_key,
                action=self._insert_if_missing(
                    model,
                    lambda key=s3_key: model.s3_key == key,
                    {"s3_key": s3_key, "artist": artist},
                    s3_key,
                    analytics,
                ),
            )
            for s3_key, artist in rows
        ]
        logger.info(f"Seeding {len(tasks)} rows into {model.__tablename__}")
        return await self._run(tasks, analytics)

    async def seed_binders(self, analytics: Optional[RunAnalytics] = None) -> RunAnalytics:
        return await self.seed_images(BinderImage, BINDERS, analytics)

    async def seed_avatars(self, analytics: Optional[RunAnalytics] = None) -> RunAnalytics:
        return await self.seed_images(Avatar, AVATARS, analytics)

    async def seed_tags(self, source, analytics: Optional[RunAnalytics] = None) -> RunAnalytics:
        """
        Seed base tags and every archetype name.

        Raises:
            ExtractionError: If the archetype list cannot be fetched
        """
        analytics = analytics or RunAnalytics(name=Tag.__tablename__)
        titles = build_tag_titles(await source.fetch_archetypes())
        tasks = [
            TransferTask(
                name=title,
                action=self._insert_if_missing(
                    Tag,
                    lambda value=title: Tag.title == value,
                    {"title": title},
                    title,
                    analytics,
                ),
            )
            for title in titles
        ]
        logger.info(f"Generating {len(tasks)} tags...")
        return await self._run(tasks, analytics)
