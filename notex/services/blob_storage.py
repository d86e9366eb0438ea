"""
NoteX Backend — Blob Storage Gateway
=====================================

What:  Writes export artifacts to Google Cloud Storage.
How:   google-cloud-storage's client is synchronous; uploads run in a worker
       thread via asyncio.to_thread() so the event loop keeps serving
       requests while the object is written.
Who:   Constructed by the configuration loader; used by ExportWriter.
"""

import asyncio
import logging
from typing import Optional, Protocol

from google.cloud import storage

logger = logging.getLogger(__name__)


class BlobStorage(Protocol):
    """Minimal blob storage contract used by the export writer."""

    async def upload(self, bucket: str, key: str, data: bytes, content_type: str) -> str: ...


class GCSBlobStorage:
    """BlobStorage backed by a google.cloud.storage.Client."""

    def __init__(self, client: Optional[storage.Client] = None):
        self._client = client or storage.Client()

    def _upload_sync(self, bucket: str, key: str, data: bytes, content_type: str) -> None:
        blob = self._client.bucket(bucket).blob(key)
        blob.upload_from_string(data, content_type=content_type)

    async def upload(self, bucket: str, key: str, data: bytes, content_type: str) -> str:
        """
        Write `data` to gs://bucket/key.

        Returns:
            The fully-qualified object location.
        """
        await asyncio.to_thread(self._upload_sync, bucket, key, data, content_type)
        location = f"gs://{bucket}/{key}"
        logger.info("Wrote %d bytes to %s", len(data), location)
        return location
