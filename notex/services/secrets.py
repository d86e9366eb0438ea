"""
NoteX Backend — Secret Manager Access
======================================

What:  Reads the database credentials and export bucket name from Google
       Secret Manager.
How:   SecretManagerServiceAsyncClient.access_secret_version() for each of
       the four secrets, fetched concurrently with asyncio.gather().
Who:   Called by the configuration loader, once per load attempt.

Secrets (version from Settings.secret_version, default "latest"):
    db-user        database user
    db-pass        database password
    db-name        database name
    backup-bucket  bucket receiving note exports
"""

import asyncio
import logging
from typing import NamedTuple, Optional, Protocol

from google.cloud import secretmanager

from notex.config import Settings

logger = logging.getLogger(__name__)

DB_USER_SECRET = "db-user"
DB_PASSWORD_SECRET = "db-pass"
DB_NAME_SECRET = "db-name"
EXPORT_BUCKET_SECRET = "backup-bucket"


class SecretSource(Protocol):
    """Anything that can resolve a fully-qualified secret version name."""

    async def access(self, name: str) -> str: ...


class SecretManagerSource:
    """SecretSource backed by Google Secret Manager."""

    def __init__(self, client: Optional[secretmanager.SecretManagerServiceAsyncClient] = None):
        # The async client binds to the running loop, so build it lazily
        self._client = client

    async def access(self, name: str) -> str:
        if self._client is None:
            self._client = secretmanager.SecretManagerServiceAsyncClient()
        response = await self._client.access_secret_version(name=name)
        return response.payload.data.decode("utf-8")


class DatabaseSecrets(NamedTuple):
    db_user: str
    db_password: str
    db_name: str
    export_bucket: str


async def fetch_database_secrets(source: SecretSource, settings: Settings) -> DatabaseSecrets:
    """
    Fetch all four secrets concurrently.

    Raises:
        Whatever the source raises; the loader turns it into a
        ConfigurationError.
    """
    names = [
        settings.secret_name(secret_id)
        for secret_id in (
            DB_USER_SECRET,
            DB_PASSWORD_SECRET,
            DB_NAME_SECRET,
            EXPORT_BUCKET_SECRET,
        )
    ]
    logger.info("Fetching %d secrets from project %s", len(names), settings.secret_project_id)
    values = await asyncio.gather(*(source.access(name) for name in names))
    return DatabaseSecrets(*values)
