"""
Decide whether a sync run is needed by comparing dataset versions.
"""

from datetime import datetime
from typing import Optional
import logging

from core.exceptions import VersionGateError
from models.dataset_version import DatasetVersion
from pipeline.loaders.postgres_loader import PostgresStore

logger = logging.getLogger(__name__)


class VersionGate:
    """
    Compare the remote database version with the last downloaded one.

    Behaviour:
    - No stored version: record the remote one, run
    - Stored version differs: update it in place, run; if the update
      matches zero rows (record removed meanwhile) insert a fresh one
    - Versions match: do not run

    The read and the write happen in one transaction with the latest
    row locked (SELECT ... FOR UPDATE on PostgreSQL), so concurrent
    runs serialize on the version record.
    """

    def __init__(self, store: PostgresStore, source):
        self.store = store
        self.source = source
        self.remote_version: Optional[str] = None
        self.stored_version: Optional[str] = None

    async def should_run(self) -> bool:
        """
        Returns:
            True when the remote version changed (or none was stored)

        Raises:
            ExtractionError: If the remote version cannot be fetched
            VersionGateError: If the version record cannot be read or written
        """
        info = await self.source.fetch_database_version()
        self.remote_version = info.database_version

        try:
            latest = await self.store.select_latest(
                DatasetVersion, DatasetVersion.downloaded_version, for_update=True
            )
            self.stored_version = latest.downloaded_version if latest else None

            if latest is None:
                await self._record_new_version()
                await self.store.commit()
                logger.info(f"No stored version, recorded {self.remote_version}")
                return True

            if latest.downloaded_version == self.remote_version:
                await self.store.commit()
                logger.info(f"Dataset version {self.remote_version} already downloaded")
                return False

            result = await self.store.update(
                DatasetVersion,
                {"downloaded_version": self.remote_version, "last_updated": datetime.utcnow()},
                DatasetVersion.id == latest.id,
            )
            if not result.matched:
                logger.warning(
                    f"Version record {latest.id} matched no rows on update, inserting a new one"
                )
                await self._record_new_version()

            await self.store.commit()
            logger.info(f"Dataset version changed {self.stored_version} -> {self.remote_version}")
            return True

        except Exception as e:
            await self.store.rollback()
            raise VersionGateError(
                "Failed to record dataset version",
                context={"remote_version": self.remote_version, "stored_version": self.stored_version},
                original_exception=e
            )

    async def _record_new_version(self):
        await self.store.insert(
            DatasetVersion,
            {"downloaded_version": self.remote_version, "last_updated": datetime.utcnow()},
        )
