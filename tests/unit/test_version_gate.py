"""
Unit tests for the version gate
"""

import pytest
from unittest.mock import AsyncMock, patch
from sqlalchemy import select
from core.exceptions import NetworkError, VersionGateError
from models.dataset_version import DatasetVersion
from pipeline.loaders.postgres_loader import UpdateResult
from pipeline.version_gate import VersionGate


async def stored_versions(session):
    result = await session.execute(select(DatasetVersion.downloaded_version).order_by(DatasetVersion.id))
    return list(result.scalars().all())


class TestVersionGate:
    """Test run/skip decisions and version recording"""

    @pytest.mark.asyncio
    async def test_first_run_records_version(self, store, db_session, make_source):
        gate = VersionGate(store, make_source(version="1.0"))

        assert await gate.should_run() is True
        assert gate.stored_version is None
        assert await stored_versions(db_session) == ["1.0"]

    @pytest.mark.asyncio
    async def test_unchanged_version_skips(self, store, db_session, make_source):
        await VersionGate(store, make_source(version="1.0")).should_run()

        gate = VersionGate(store, make_source(version="1.0"))

        assert await gate.should_run() is False
        assert gate.stored_version == "1.0"
        assert await stored_versions(db_session) == ["1.0"]

    @pytest.mark.asyncio
    async def test_changed_version_updates_in_place(self, store, db_session, make_source):
        await VersionGate(store, make_source(version="1.0")).should_run()

        gate = VersionGate(store, make_source(version="1.1"))

        assert await gate.should_run() is True
        assert gate.stored_version == "1.0"
        assert gate.remote_version == "1.1"
        assert await stored_versions(db_session) == ["1.1"]

    @pytest.mark.asyncio
    async def test_zero_rows_updated_inserts_instead(self, store, db_session, make_source):
        """A stale record that no longer matches is replaced by a fresh insert"""
        await VersionGate(store, make_source(version="1.0")).should_run()

        gate = VersionGate(store, make_source(version="1.1"))
        with patch.object(store, "update", AsyncMock(return_value=UpdateResult(rows_affected=0))):
            assert await gate.should_run() is True

        assert await stored_versions(db_session) == ["1.0", "1.1"]

    @pytest.mark.asyncio
    async def test_version_fetch_failure_propagates(self, store, db_session, make_source):
        source = make_source()
        source.fetch_database_version = AsyncMock(side_effect=NetworkError("unreachable"))

        with pytest.raises(NetworkError):
            await VersionGate(store, source).should_run()

        assert await stored_versions(db_session) == []

    @pytest.mark.asyncio
    async def test_store_failure_raises_gate_error(self, make_source):
        mock_store = AsyncMock()
        mock_store.select_latest.side_effect = RuntimeError("connection reset")

        gate = VersionGate(mock_store, make_source(version="1.1"))

        with pytest.raises(VersionGateError) as exc_info:
            await gate.should_run()

        mock_store.rollback.assert_awaited_once()
        assert exc_info.value.context["remote_version"] == "1.1"
