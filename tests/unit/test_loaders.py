"""
Unit tests for the relational store and card loader
"""

import pytest
from unittest.mock import AsyncMock
from sqlalchemy import select, func
from core.exceptions import UpsertError
from models.card import Card
from models.dataset_version import DatasetVersion
from pipeline.analytics import RunAnalytics
from pipeline.loaders.postgres_loader import CardLoader, PostgresStore


async def count_cards(session):
    result = await session.execute(select(func.count()).select_from(Card))
    return result.scalar()


class TestPostgresStore:
    """Test store operations against SQLite"""

    @pytest.mark.asyncio
    async def test_update_reports_zero_rows(self, store):
        result = await store.update(DatasetVersion, {"downloaded_version": "2.0"}, DatasetVersion.id == 999)

        assert result.rows_affected == 0
        assert result.matched is False

    @pytest.mark.asyncio
    async def test_update_reports_affected_rows(self, store):
        await store.insert(DatasetVersion, {"downloaded_version": "1.0"})
        await store.commit()

        result = await store.update(
            DatasetVersion, {"downloaded_version": "2.0"}, DatasetVersion.downloaded_version == "1.0"
        )

        assert result.rows_affected == 1
        assert result.matched is True

    @pytest.mark.asyncio
    async def test_select_latest_orders_descending(self, store):
        for version in ("1.0", "1.2", "1.1"):
            await store.insert(DatasetVersion, {"downloaded_version": version})
        await store.commit()

        latest = await store.select_latest(DatasetVersion, DatasetVersion.downloaded_version)

        assert latest.downloaded_version == "1.2"

    @pytest.mark.asyncio
    async def test_select_latest_empty_table(self, store):
        assert await store.select_latest(DatasetVersion, DatasetVersion.downloaded_version) is None

    @pytest.mark.asyncio
    async def test_exists(self, store):
        await store.insert(DatasetVersion, {"downloaded_version": "1.0"})

        assert await store.exists(DatasetVersion, DatasetVersion.downloaded_version == "1.0") is True
        assert await store.exists(DatasetVersion, DatasetVersion.downloaded_version == "9.9") is False


class TestCardLoader:
    """Test card upsert and per-card failure isolation"""

    @pytest.mark.asyncio
    async def test_second_payload_overwrites_first(self, store, db_session, make_card):
        loader = CardLoader(store)

        await loader.upsert_card(make_card(card_id=89631139, name="Blue-Eyes White Dragon", atk=3000))
        await loader.upsert_card(
            make_card(card_id=89631139, name="Blue-Eyes White Dragon", atk=3100, archetype="Blue-Eyes")
        )

        assert await count_cards(db_session) == 1
        row = (await db_session.execute(select(Card.name, Card.attack, Card.archetype))).one()
        assert row.attack == 3100
        assert row.archetype == "Blue-Eyes"

    @pytest.mark.asyncio
    async def test_payload_mapping(self, store, db_session, sample_card):
        await CardLoader(store).upsert_card(sample_card)

        row = (await db_session.execute(
            select(Card.description, Card.frame_type, Card.defense, Card.formats, Card.konami_id, Card.card_images)
        )).one()
        assert row.description == sample_card["desc"]
        assert row.frame_type == "normal"
        assert row.defense == 2100
        assert row.formats == ["TCG", "OCG"]
        assert row.konami_id == 4041
        assert row.card_images == [46986414]

    @pytest.mark.asyncio
    async def test_missing_misc_info(self, store, db_session, make_card):
        card = make_card()
        del card["misc_info"]

        await CardLoader(store).upsert_card(card)

        row = (await db_session.execute(select(Card.formats, Card.konami_id))).one()
        assert row.formats is None
        assert row.konami_id is None

    @pytest.mark.asyncio
    async def test_invalid_payload_raises_upsert_error(self, store):
        with pytest.raises(UpsertError) as exc_info:
            await CardLoader(store).upsert_card({"id": 1})

        assert exc_info.value.context["record_id"] == 1

    @pytest.mark.asyncio
    async def test_one_bad_card_does_not_stop_the_rest(self, store, db_session, make_card):
        cards = [
            make_card(card_id=1, name="First"),
            {"id": 2, "desc": "no name"},
            make_card(card_id=3, name="Third"),
        ]
        analytics = RunAnalytics(name="cards")

        await CardLoader(store).load(cards, analytics)

        assert analytics.total == 3
        assert analytics.processed == 2
        assert analytics.failed == 1
        assert analytics.failed_items == ["2"]
        assert await count_cards(db_session) == 2

    @pytest.mark.asyncio
    async def test_non_object_entries_are_counted_as_failures(self, store, db_session, make_card):
        cards = [None, make_card(card_id=1, name="First"), "not a card", 42]
        analytics = RunAnalytics(name="cards")

        await CardLoader(store).load(cards, analytics)

        assert analytics.processed == 1
        assert analytics.failed == 3
        assert analytics.failed_items == ["#0", "#2", "#3"]
        assert await count_cards(db_session) == 1

    @pytest.mark.asyncio
    async def test_non_object_payload_raises_upsert_error(self, store):
        with pytest.raises(UpsertError) as exc_info:
            await CardLoader(store).upsert_card(None)

        assert exc_info.value.context["payload_type"] == "NoneType"

    @pytest.mark.asyncio
    async def test_malformed_nested_field_is_contained(self, store, make_card):
        card = make_card(card_id=5, name="Broken Images")
        card["card_images"] = ["not-an-object"]
        analytics = RunAnalytics(name="cards")

        await CardLoader(store).load([card, make_card(card_id=6, name="Fine")], analytics)

        assert analytics.processed == 1
        assert analytics.failed_items == ["5"]

    @pytest.mark.asyncio
    async def test_database_error_rolls_back_and_continues(self, make_card):
        mock_store = AsyncMock(spec=PostgresStore)
        mock_store.upsert.side_effect = [None, RuntimeError("deadlock detected"), None]

        analytics = await CardLoader(mock_store).load(
            [make_card(card_id=i, name=f"Card {i}") for i in range(1, 4)]
        )

        assert analytics.processed == 2
        assert analytics.failed_items == ["2"]
        assert mock_store.commit.await_count == 2
        mock_store.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_load_empty_list(self):
        mock_store = AsyncMock(spec=PostgresStore)

        analytics = await CardLoader(mock_store).load([])

        assert analytics.total == 0
        mock_store.upsert.assert_not_called()
