"""
NoteX Backend — Test Configuration (conftest.py)
=================================================

What:  Shared pytest fixtures for the entire test suite.
How:   PostgreSQL is replaced by an in-memory sqlite+aiosqlite engine,
       Secret Manager and Cloud Storage by in-process fakes injected through
       the ConfigurationLoader constructor.

Fixture Hierarchy (all function-scoped):
    ├── secret_source: FakeSecretSource with a call counter
    ├── blob_storage: FakeBlobStorage recording uploads
    ├── loader: ConfigurationLoader wired to the fakes above
    ├── test_client: HTTPX AsyncClient talking to create_app(loader)
    ├── db_engine / db_session: schema-initialized sqlite engine and session
    └── mock_db_session: AsyncMock session for failure-path unit tests
"""

import asyncio
import os
from typing import Dict, List, Tuple
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

# Keep the suite away from real infrastructure, before any app import
os.environ["DB_HOST"] = "db.test.internal"
os.environ["LOG_LEVEL"] = "WARNING"

from notex.config import RuntimeConfig, Settings  # noqa: E402
from notex.database import create_schema, create_session_factory  # noqa: E402
from notex.services.loader import ConfigurationLoader, Runtime  # noqa: E402


TEST_SECRETS = {
    "db-user": "notex",
    "db-pass": "s3cret",
    "db-name": "notex",
    "backup-bucket": "notex-backups",
}


# ══════════════════════════════════════════════════════════════════════════
# Fakes
# ══════════════════════════════════════════════════════════════════════════

class FakeSecretSource:
    """Secret Manager stand-in; `calls` counts every access."""

    def __init__(self, values: Dict[str, str] = TEST_SECRETS, delay: float = 0.0):
        self.values = dict(values)
        self.delay = delay
        self.fail = False
        self.calls = 0
        self.names: List[str] = []

    async def access(self, name: str) -> str:
        self.calls += 1
        self.names.append(name)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError("secret manager unavailable")
        # projects/<p>/secrets/<id>/versions/<v>
        secret_id = name.split("/")[3]
        return self.values[secret_id]


class FakeBlobStorage:
    """Cloud Storage stand-in keeping uploaded objects in memory."""

    def __init__(self):
        self.objects: Dict[Tuple[str, str], bytes] = {}
        self.content_types: Dict[Tuple[str, str], str] = {}
        self.fail = False

    async def upload(self, bucket: str, key: str, data: bytes, content_type: str) -> str:
        if self.fail:
            raise OSError("storage unavailable")
        self.objects[(bucket, key)] = data
        self.content_types[(bucket, key)] = content_type
        return f"gs://{bucket}/{key}"


def sqlite_engine():
    # StaticPool: one connection, so the in-memory database survives
    return create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )


def sqlite_engine_factory(config: RuntimeConfig, settings: Settings):
    return sqlite_engine()


# ══════════════════════════════════════════════════════════════════════════
# Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def secret_source():
    return FakeSecretSource()


@pytest.fixture
def blob_storage():
    return FakeBlobStorage()


@pytest.fixture
def loader(secret_source, blob_storage):
    return ConfigurationLoader(
        settings=Settings(db_host="db.test.internal"),
        secret_source=secret_source,
        engine_factory=sqlite_engine_factory,
        storage_factory=lambda: blob_storage,
    )


@pytest_asyncio.fixture
async def test_client(loader):
    """
    HTTPX AsyncClient routed straight to a fresh app bound to `loader`.

    Usage:
        async def test_list(test_client):
            response = await test_client.get("/notes")
            assert response.status_code == 200
    """
    from notex.main import create_app

    app = create_app(loader=loader)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    await loader.aclose()


@pytest_asyncio.fixture
async def db_engine():
    engine = sqlite_engine()
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    factory = create_session_factory(db_engine)
    async with factory() as session:
        yield session


@pytest.fixture
def runtime(db_engine, blob_storage):
    """Runtime over the sqlite engine, as the loader would build it."""
    config = RuntimeConfig(
        db_user="notex",
        db_password="s3cret",
        db_name="notex",
        db_host="db.test.internal",
        export_bucket="notex-backups",
    )
    return Runtime(
        config=config,
        engine=db_engine,
        session_factory=create_session_factory(db_engine),
        storage=blob_storage,
    )


@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        mock_db_session.execute.side_effect = SQLAlchemyError("boom")
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def make_loader(blob_storage):
    """Factory for loaders with per-test collaborators."""

    def _make(secret_source, **overrides):
        kwargs = dict(
            settings=Settings(db_host="db.test.internal"),
            secret_source=secret_source,
            engine_factory=sqlite_engine_factory,
            storage_factory=lambda: blob_storage,
        )
        kwargs.update(overrides)
        return ConfigurationLoader(**kwargs)

    return _make


@pytest.fixture
def make_secret_source():
    return FakeSecretSource


@pytest.fixture
def engine_factory():
    return sqlite_engine_factory
