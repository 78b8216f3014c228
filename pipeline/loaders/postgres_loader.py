"""
Load cards into PostgreSQL with upsert logic (idempotency)
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Sequence, Union
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, exists
from sqlalchemy.dialects import postgresql, sqlite
from pydantic import ValidationError
from models.card import Card
from schemas.card import CardCreate
from core.exceptions import UpsertError
from pipeline.analytics import RunAnalytics
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpdateResult:
    """Outcome of an UPDATE; zero rows means nothing matched the criteria"""
    rows_affected: int

    @property
    def matched(self) -> bool:
        return self.rows_affected > 0


class PostgresStore:
    """
    Narrow relational store interface over one async session.

    Operations:
    - upsert: INSERT ... ON CONFLICT DO UPDATE on the key columns
    - select_latest: first row ordered by a column, descending
    - insert / update (with affected row count) / exists
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    def _insert(self, model):
        """Dialect-specific INSERT supporting ON CONFLICT (PostgreSQL, or SQLite in tests)"""
        bind = getattr(self.db, "bind", None)
        if getattr(getattr(bind, "dialect", None), "name", None) == "sqlite":
            return sqlite.insert(model)
        return postgresql.insert(model)

    async def upsert(self, model, key: Union[str, Sequence[str]], values: Dict[str, Any]):
        """
        Insert a row, or overwrite every non-key column when the key exists.

        Args:
            model: ORM model class
            key: Conflict column name(s)
            values: Column values, including the key
        """
        key_columns = [key] if isinstance(key, str) else list(key)
        values = dict(values)
        if "updated_at" in model.__table__.columns and "updated_at" not in values:
            values["updated_at"] = datetime.utcnow()

        stmt = self._insert(model).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=key_columns,
            set_={
                column: stmt.excluded[column]
                for column in values
                if column not in key_columns
            }
        )
        await self.db.execute(stmt)

    async def select_latest(self, model, order_by, for_update: bool = False):
        """Return the first row ordered by order_by descending, or None"""
        stmt = select(model).order_by(order_by.desc()).limit(1)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def insert(self, model, values: Dict[str, Any]):
        await self.db.execute(self._insert(model).values(**values))

    async def update(self, model, values: Dict[str, Any], *criteria) -> UpdateResult:
        stmt = (
            update(model)
            .where(*criteria)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return UpdateResult(rows_affected=result.rowcount or 0)

    async def exists(self, model, *criteria) -> bool:
        result = await self.db.execute(select(exists().where(*criteria)))
        return bool(result.scalar())

    async def commit(self):
        await self.db.commit()

    async def rollback(self):
        await self.db.rollback()


class CardLoader:
    """
    Upsert cards one at a time.

    Ensures:
    - No duplicate rows on repeated runs (conflict on the external id)
    - Every mutable column reflects the latest payload
    - One failing card never stops the rest: each card commits on its own
    """

    def __init__(self, store: PostgresStore):
        self.store = store

    async def upsert_card(self, payload: Dict[str, Any]) -> CardCreate:
        """
        Validate and upsert a single card payload.

        Raises:
            UpsertError: If the payload is invalid or the database rejects it
        """
        if not isinstance(payload, Mapping):
            raise UpsertError(
                "Card payload is not an object",
                context={"record_id": None, "table_name": Card.__tablename__, "payload_type": type(payload).__name__}
            )

        try:
            card = CardCreate.from_api(payload)
        except (ValidationError, KeyError, TypeError, AttributeError) as e:
            raise UpsertError(
                "Invalid card payload",
                context={"record_id": payload.get("id"), "table_name": Card.__tablename__},
                original_exception=e
            )

        try:
            await self.store.upsert(Card, "id", card.to_row())
            await self.store.commit()
        except Exception as e:
            await self.store.rollback()
            raise UpsertError(
                "Failed to upsert card",
                context={"record_id": card.id, "table_name": Card.__tablename__, "operation": "UPSERT"},
                original_exception=e
            )
        return card

    async def load(
        self,
        cards: Sequence[Dict[str, Any]],
        analytics: Optional[RunAnalytics] = None
    ) -> RunAnalytics:
        """
        Upsert every card, counting successes and failures independently.

        Args:
            cards: Raw card payloads from the catalog
            analytics: Run-scoped counters to update (created if omitted)

        Returns:
            The analytics that were updated
        """
        analytics = analytics or RunAnalytics(name="cards")
        analytics.total = len(cards)
        logger.info(f"Copying {len(cards)} cards...")

        for index, payload in enumerate(cards):
            try:
                card = await self.upsert_card(payload)
                analytics.record_processed(card.name)
            except UpsertError as e:
                record_id = e.context.get("record_id")
                identifier = str(record_id) if record_id is not None else f"#{index}"
                analytics.record_failed(identifier)
                logger.error(
                    f"Upsert failed for card {identifier}: {e}",
                    extra={"error_context": e.to_dict()}
                )

        logger.info(f"Loaded {analytics.processed} cards into {Card.__tablename__} ({analytics.failed} failed)")
        return analytics
