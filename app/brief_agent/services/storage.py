"""
Blob storage for the original PDF bytes.

``S3BlobStore`` writes to an S3 bucket with boto3. Without a bucket
configured the service falls back to ``InMemoryBlobStore`` so uploads
still work in development.
"""

import asyncio
import logging
import re
import threading
import time
from abc import ABC, abstractmethod

from ..exceptions import StorageError

logger = logging.getLogger(__name__)


def build_storage_key(original_name: str, prefix: str = "uploads") -> str:
    """
    Build the object key for an upload.

    Format: ``<prefix>/<epoch milliseconds>-<name>`` with runs of whitespace
    in the name replaced by underscores.
    """
    safe_name = re.sub(r"\s+", "_", original_name.strip()) or "file.pdf"
    return f"{prefix}/{int(time.time() * 1000)}-{safe_name}"


class BlobStore(ABC):
    """Contract for the object store holding uploaded PDFs."""

    @abstractmethod
    def put(self, key: str, data: bytes, content_type: str = "application/pdf") -> None:
        """
        Store ``data`` under ``key``.

        Raises:
            StorageError: If the object could not be written.
        """

    async def upload(self, key: str, data: bytes, timeout: float | None = None) -> None:
        """Run ``put`` off the event loop, bounded by ``timeout`` seconds."""
        try:
            await asyncio.wait_for(asyncio.to_thread(self.put, key, data), timeout=timeout)
        except asyncio.TimeoutError as e:
            logger.error("Blob upload of %s timed out after %ss", key, timeout)
            raise StorageError(f"Upload to storage timed out after {timeout}s") from e


class InMemoryBlobStore(BlobStore):
    """Keeps objects in a dict. Used when no bucket is configured, and in tests."""

    def __init__(self):
        self.objects: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def put(self, key: str, data: bytes, content_type: str = "application/pdf") -> None:
        with self._lock:
            self.objects[key] = data
        logger.debug("Stored %d bytes in memory under %s", len(data), key)


class S3BlobStore(BlobStore):
    """Writes objects to S3 with ``put_object``."""

    def __init__(
        self,
        bucket: str,
        region: str | None = None,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        timeout: float = 30.0,
    ):
        self.bucket = bucket
        self.region = region
        self._access_key_id = access_key_id
        self._secret_access_key = secret_access_key
        self.timeout = timeout
        self._client = None

    @property
    def client(self):
        """Lazy-load the boto3 S3 client."""
        if self._client is None:
            import boto3
            from botocore.config import Config

            config = Config(connect_timeout=self.timeout, read_timeout=self.timeout)
            if self._access_key_id and self._secret_access_key:
                self._client = boto3.client(
                    "s3",
                    region_name=self.region,
                    aws_access_key_id=self._access_key_id,
                    aws_secret_access_key=self._secret_access_key,
                    config=config,
                )
            else:
                self._client = boto3.client("s3", region_name=self.region, config=config)
        return self._client

    def put(self, key: str, data: bytes, content_type: str = "application/pdf") -> None:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("S3 upload of %s to %s failed: %s", key, self.bucket, e)
            raise StorageError(f"Upload to storage failed: {e}") from e

        logger.info("Uploaded %d bytes to s3://%s/%s", len(data), self.bucket, key)
