import pytest
from sqlalchemy.pool import StaticPool

from mediasync.client.client import AnilistClient
from mediasync.persistence.engine import DatabaseManager
from mediasync.sync.service import MediaSyncService

ANILIST_URL = "https://graphql.test/api"


# --- FIXTURES ---
# Logic: One in-memory SQLite database per test, shared across sessions via StaticPool.
@pytest.fixture
def db():
    manager = DatabaseManager(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    manager.create_all()
    yield manager
    manager.engine.dispose()


@pytest.fixture
def client():
    return AnilistClient(base_url=ANILIST_URL, timeout_s=5.0)


@pytest.fixture
def service(db, client):
    return MediaSyncService(db_manager=db, client=client)

