"""
NoteX Backend — Configuration Loader
=====================================

What:  One-time process setup: secrets, database pool, schema, storage client.
How:   ensure_ready() is awaited by the readiness middleware on every request.
       The first caller starts a single asyncio.Task running the setup
       sequence; concurrent callers await the same task. On success the
       Runtime is cached for the life of the process. On failure the task is
       discarded so the next request starts again from scratch.

Setup sequence:
    1. Fetch db-user, db-pass, db-name, backup-bucket (concurrently)
    2. Read DB_HOST from the environment (ConfigurationError if unset)
    3. Create the async engine / connection pool (plain TCP)
    4. CREATE TABLE IF NOT EXISTS notes
    5. Construct the blob storage client

    ┌─────────┐  first call   ┌──────────┐  success  ┌────────┐
    │ COLD    │──────────────▶│ LOADING  │──────────▶│ READY  │
    └─────────┘               └──────────┘           └────────┘
         ▲        failure          │
         └─────────────────────────┘
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from notex.config import RuntimeConfig, Settings
from notex.database import create_db_engine, create_schema, create_session_factory
from notex.exceptions import ConfigurationError, NotexError
from notex.services.blob_storage import BlobStorage, GCSBlobStorage
from notex.services.secrets import SecretManagerSource, SecretSource, fetch_database_secrets

logger = logging.getLogger(__name__)

EngineFactory = Callable[[RuntimeConfig, Settings], AsyncEngine]
StorageFactory = Callable[[], BlobStorage]


@dataclass
class Runtime:
    """Everything a request needs once the process is configured."""
    config: RuntimeConfig
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    storage: BlobStorage


class ConfigurationLoader:
    """
    At-most-once-success initializer shared by every request in a process.

    Collaborators are injectable so tests can count secret fetches and swap
    PostgreSQL / Cloud Storage for local stand-ins.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        secret_source: Optional[SecretSource] = None,
        engine_factory: EngineFactory = create_db_engine,
        storage_factory: StorageFactory = GCSBlobStorage,
    ):
        self._settings = settings
        self._secret_source = secret_source
        self._engine_factory = engine_factory
        self._storage_factory = storage_factory
        self._runtime: Optional[Runtime] = None
        self._pending: Optional[asyncio.Task] = None

    @property
    def ready(self) -> bool:
        return self._runtime is not None

    @property
    def runtime(self) -> Runtime:
        if self._runtime is None:
            raise ConfigurationError("Configuration accessed before ensure_ready()")
        return self._runtime

    async def ensure_ready(self) -> Runtime:
        """
        Return the process Runtime, running the setup sequence if needed.

        Safe to call on every request: after the first success this returns
        immediately without contacting Secret Manager or the database.

        Raises:
            ConfigurationError: setup failed; the next call retries.
        """
        if self._runtime is not None:
            return self._runtime

        if self._pending is None:
            self._pending = asyncio.create_task(self._load())
            self._pending.add_done_callback(self._discard_failed)
        pending = self._pending

        try:
            # shield: a cancelled request must not cancel the shared setup
            runtime = await asyncio.shield(pending)
        except Exception:
            if self._pending is pending:
                self._pending = None
            raise

        if self._runtime is None:
            self._runtime = runtime
            self._pending = None
            logger.info(
                "Configuration loaded (db=%s@%s:%d/%s, bucket=%s)",
                runtime.config.db_user,
                runtime.config.db_host,
                runtime.config.db_port,
                runtime.config.db_name,
                runtime.config.export_bucket,
            )
        return self._runtime

    def _discard_failed(self, task: asyncio.Task) -> None:
        # Runs even when every waiter was cancelled before the load finished
        if task.cancelled() or task.exception() is not None:
            if self._pending is task:
                self._pending = None

    async def _load(self) -> Runtime:
        settings = self._settings or Settings()
        source = self._secret_source or SecretManagerSource()

        # ── Step 1: Secrets ───────────────────────────────────────────────
        try:
            secrets = await fetch_database_secrets(source, settings)
        except Exception as exc:
            logger.error("Secret retrieval failed: %s", exc, exc_info=True)
            raise ConfigurationError(
                "Secret retrieval failed",
                context={"error_type": type(exc).__name__},
            ) from exc

        # ── Step 2: Host ──────────────────────────────────────────────────
        if not settings.db_host:
            logger.error("DB_HOST env var is not set")
            raise ConfigurationError("DB_HOST env var is not set")

        config = RuntimeConfig(
            db_user=secrets.db_user,
            db_password=secrets.db_password,
            db_name=secrets.db_name,
            db_host=settings.db_host,
            db_port=settings.db_port,
            export_bucket=secrets.export_bucket,
        )

        # ── Steps 3-5: Pool, schema, storage ──────────────────────────────
        engine: Optional[AsyncEngine] = None
        try:
            engine = self._engine_factory(config, settings)
            await create_schema(engine)
            storage = self._storage_factory()
        except Exception as exc:
            if engine is not None:
                await engine.dispose()
            if isinstance(exc, NotexError):
                raise
            logger.error("Database or storage setup failed: %s", exc, exc_info=True)
            raise ConfigurationError(
                "Database or storage setup failed",
                context={"error_type": type(exc).__name__},
            ) from exc

        return Runtime(
            config=config,
            engine=engine,
            session_factory=create_session_factory(engine),
            storage=storage,
        )

    async def aclose(self) -> None:
        """Dispose the connection pool; the loader returns to the cold state."""
        runtime, self._runtime = self._runtime, None
        if runtime is not None:
            await runtime.engine.dispose()
            logger.info("Database engine disposed")
