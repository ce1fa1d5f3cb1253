"""
Object Context Resolution

Builds the read-only snapshot of an object that authorization and handlers
work from: the database record merged with the storage HEAD result.

Resolution never raises. Any failure (unknown object, storage error) is
logged and yields None, which the access gate treats exactly like a missing
object.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from objmeta.repositories.objects import ObjectRepository
from objmeta.services.storage import StorageService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ObjectContext:
    """Frozen snapshot of the object a request targets."""

    id: UUID
    path: str
    public: bool
    active: bool = True
    created_by: UUID | None = None
    created_at: datetime | None = None
    content_length: int | None = None
    content_type: str | None = None
    etag: str | None = None
    s3_version_id: str | None = None
    storage_metadata: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "path": self.path,
            "public": self.public,
            "active": self.active,
            "created_by": self.created_by,
            "created_at": self.created_at,
            "content_length": self.content_length,
            "content_type": self.content_type,
            "etag": self.etag,
            "s3_version_id": self.s3_version_id,
            "storage_metadata": dict(self.storage_metadata),
        }


async def resolve_object_context(
    object_id: UUID,
    session: AsyncSession,
    storage: StorageService | None = None,
) -> ObjectContext | None:
    """
    Load the object record and merge in its storage headers.

    Args:
        object_id: Object to resolve
        session: Unit of work to read through
        storage: Storage service; headers are skipped when None or unconfigured

    Returns:
        ObjectContext, or None if anything went wrong
    """
    try:
        obj = await ObjectRepository(session).get_by_id(object_id)
        if obj is None:
            raise LookupError(f"Object {object_id} not found")

        head: dict[str, Any] = {}
        if storage is not None and storage.configured:
            head = await storage.head_object(obj.path)

        return ObjectContext(
            id=obj.id,
            path=obj.path,
            public=obj.public,
            active=obj.active,
            created_by=obj.created_by,
            created_at=obj.created_at,
            content_length=head.get("content_length"),
            content_type=head.get("content_type"),
            etag=head.get("etag"),
            s3_version_id=head.get("s3_version_id"),
            storage_metadata=MappingProxyType(head.get("storage_metadata") or {}),
        )
    except Exception as e:
        logger.warning(
            f"Could not resolve object context: {e}",
            extra={"function": "resolve_object_context", "object_id": str(object_id)},
        )
        return None
