"""
Object Storage Service

Reads object headers from S3-compatible storage. Byte transfer (upload,
download) is handled elsewhere; this service only answers HEAD requests so a
request's object context can carry size, type and user metadata.
"""

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from objmeta.config import Settings

logger = logging.getLogger(__name__)

DELIMITER = "/"


def _get_settings() -> "Settings":
    """Lazy import of settings to avoid circular dependencies."""
    from objmeta.config import get_settings
    return get_settings()


def join_path(*parts: str) -> str:
    """Join key segments with single delimiters, ignoring empty segments."""
    stripped = [p.strip(DELIMITER) for p in parts if p and p.strip(DELIMITER)]
    return DELIMITER.join(stripped)


class StorageService:
    """
    HEAD access to the configured bucket.

    Usage:
        storage = StorageService()
        if storage.configured:
            head = await storage.head_object("reports/q1.pdf")
    """

    def __init__(self, settings: "Settings | None" = None):
        self.settings = settings or _get_settings()

    @property
    def configured(self) -> bool:
        return self.settings.s3_configured

    @asynccontextmanager
    async def _get_s3_client(self):
        """Get S3 client context manager."""
        if not self.configured:
            raise RuntimeError("S3 storage not configured")

        from aiobotocore.session import get_session

        session = get_session()
        async with session.create_client(
            "s3",
            endpoint_url=self.settings.s3_endpoint_url,
            aws_access_key_id=self.settings.s3_access_key,
            aws_secret_access_key=self.settings.s3_secret_key,
            region_name=self.settings.s3_region,
        ) as client:
            yield client

    def object_key(self, path: str) -> str:
        """Full storage key for an object path."""
        return join_path(self.settings.s3_key_prefix, path)

    async def head_object(self, path: str, s3_version_id: str | None = None) -> dict[str, Any]:
        """
        Fetch object headers.

        Args:
            path: Object path relative to the key prefix
            s3_version_id: Specific storage version, latest if omitted

        Returns:
            Dict with content_length, content_type, etag, s3_version_id
            and storage_metadata (user metadata headers)

        Raises:
            botocore.exceptions.ClientError: Object missing or storage unreachable
        """
        params: dict[str, Any] = {
            "Bucket": self.settings.s3_bucket,
            "Key": self.object_key(path),
        }
        if s3_version_id:
            params["VersionId"] = s3_version_id

        async with self._get_s3_client() as client:
            response = await client.head_object(**params)

        return {
            "content_length": response.get("ContentLength"),
            "content_type": response.get("ContentType"),
            "etag": response.get("ETag"),
            "s3_version_id": response.get("VersionId"),
            "storage_metadata": dict(response.get("Metadata") or {}),
        }


def get_storage_service() -> StorageService:
    """FastAPI dependency returning a storage service for current settings."""
    return StorageService()
