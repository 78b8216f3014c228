"""
Pytest configuration and fixtures
"""

import pytest
import pytest_asyncio
from pathlib import Path
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool
from typing import AsyncGenerator, Dict, List, Optional, Sequence
from models import Base
from core.database import create_session_maker
from core.storage import ObjectStore
from pipeline.loaders.postgres_loader import PostgresStore
from schemas.version import DatabaseVersionInfo
import httpx

IMAGE_HOST = "https://images.ygoprodeck.com/images"


def build_card(card_id: int = 46986414, name: str = "Dark Magician", image_ids=None, **overrides):
    """One cardinfo.php card payload"""
    image_ids = image_ids or [card_id]
    payload = {
        "id": card_id,
        "name": name,
        "typeline": ["Spellcaster", "Normal"],
        "type": "Normal Monster",
        "frameType": "normal",
        "desc": "The ultimate wizard in terms of attack and defense.",
        "race": "Spellcaster",
        "atk": 2500,
        "def": 2100,
        "level": 7,
        "attribute": "DARK",
        "archetype": "Dark Magician",
        "card_sets": [
            {
                "set_name": "Legend of Blue Eyes White Dragon",
                "set_code": "LOB-005",
                "set_rarity": "Ultra Rare",
                "set_price": "0"
            }
        ],
        "card_images": [
            {
                "id": image_id,
                "image_url": f"{IMAGE_HOST}/cards/{image_id}.jpg",
                "image_url_small": f"{IMAGE_HOST}/cards_small/{image_id}.jpg",
                "image_url_cropped": f"{IMAGE_HOST}/cards_cropped/{image_id}.jpg"
            }
            for image_id in image_ids
        ],
        "card_prices": [{"cardmarket_price": "0.02", "tcgplayer_price": "0.20"}],
        "misc_info": [{"formats": ["TCG", "OCG"], "konami_id": 4041}]
    }
    payload.update(overrides)
    return payload


class InMemoryObjectStore(ObjectStore):
    """Object store double recording every call"""

    def __init__(self):
        self.objects: Dict[str, bytes] = {}
        self.content_types: Dict[str, str] = {}
        self.exists_calls: List[str] = []
        self.closed = False

    async def exists(self, key: str) -> bool:
        self.exists_calls.append(key)
        return key in self.objects

    async def put(self, key: str, body: bytes, content_type: str) -> None:
        self.objects[key] = body
        self.content_types[key] = content_type

    def close(self) -> None:
        self.closed = True


class FakeDownloader:
    """Writes a small body per URL; URLs in fail_urls raise a transport error"""

    def __init__(self, fail_urls: Sequence[str] = ()):
        self.fail_urls = set(fail_urls)
        self.downloads: List[str] = []

    async def download(self, url: str, destination: Path):
        self.downloads.append(url)
        if url in self.fail_urls:
            destination.write_bytes(b"partial")
            raise httpx.ConnectError(f"connection refused: {url}")
        destination.write_bytes(b"jpeg:" + url.encode())


class FakeCatalogSource(FakeDownloader):
    """Remote card database double: version, catalog, archetypes and downloads"""

    def __init__(
        self,
        version: str = "1.0",
        cards: Optional[List[dict]] = None,
        archetypes: Sequence[str] = (),
        fail_urls: Sequence[str] = ()
    ):
        super().__init__(fail_urls)
        self.version = version
        self.cards = cards or []
        self.archetypes = list(archetypes)
        self.version_calls = 0
        self.fetch_calls = 0
        self.closed = 0

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.closed += 1

    async def fetch_database_version(self) -> DatabaseVersionInfo:
        self.version_calls += 1
        return DatabaseVersionInfo(database_version=self.version, last_update="2024-05-02 17:32:41")

    async def fetch_cards(self) -> List[dict]:
        self.fetch_calls += 1
        return list(self.cards)

    async def fetch_archetypes(self) -> List[str]:
        return list(self.archetypes)


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """Create test database engine (SQLite file per test)"""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'sync_test.db'}",
        echo=False,
        poolclass=NullPool,  # Disable connection pooling for tests
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables after test
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_maker(test_engine):
    return create_session_maker(test_engine)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for tests"""
    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def store(db_session):
    return PostgresStore(db_session)


@pytest.fixture
def make_card():
    return build_card


@pytest.fixture
def sample_card():
    return build_card()


@pytest.fixture
def object_store():
    return InMemoryObjectStore()


@pytest.fixture
def downloader():
    return FakeDownloader()


@pytest.fixture
def make_source():
    return FakeCatalogSource


@pytest.fixture
def staging_dir(tmp_path):
    return tmp_path / "images"
