"""
Object and Version Repositories

Data access for object records and their versions.
"""

import logging
from uuid import UUID

from sqlalchemy import select

from objmeta.models.orm.objects import StoredObject, Version
from objmeta.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class ObjectRepository(BaseRepository[StoredObject]):
    """Repository for object records."""

    model = StoredObject

    async def get_by_path(self, path: str) -> StoredObject | None:
        """Get an object by its storage path."""
        return await self.get(path=path)

    async def create_object(
        self,
        path: str,
        public: bool,
        created_by: UUID,
        object_id: UUID | None = None,
    ) -> StoredObject:
        """Create an object record."""
        obj = StoredObject(path=path, public=public, created_by=created_by)
        if object_id is not None:
            obj.id = object_id
        created = await self.create(obj)
        logger.info(f"Created object {created.id} at '{path}'")
        return created

    async def set_public(
        self,
        object_id: UUID,
        public: bool,
        updated_by: UUID,
    ) -> StoredObject | None:
        """Set the public flag of an object."""
        obj = await self.get_by_id(object_id)
        if obj is None:
            return None

        obj.public = public
        obj.updated_by = updated_by
        await self.session.flush()
        await self.session.refresh(obj)

        logger.info(f"Set object {object_id} public={public}")
        return obj


class VersionRepository(BaseRepository[Version]):
    """Repository for object versions."""

    model = Version

    async def list_versions(self, object_id: UUID) -> list[Version]:
        """List versions of an object, newest first."""
        result = await self.session.execute(
            select(self.model)
            .where(self.model.object_id == object_id)
            .order_by(self.model.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_latest(self, object_id: UUID) -> Version | None:
        """Get the newest version of an object."""
        result = await self.session.execute(
            select(self.model)
            .where(self.model.object_id == object_id)
            .order_by(self.model.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_for_object(self, object_id: UUID, version_id: UUID) -> Version | None:
        """Get a version, provided it belongs to the object."""
        return await self.get(id=version_id, object_id=object_id)

    async def create_version(
        self,
        object_id: UUID,
        created_by: UUID,
        s3_version_id: str | None = None,
        mime_type: str | None = None,
        original_name: str | None = None,
    ) -> Version:
        """Create a version record."""
        version = Version(
            object_id=object_id,
            s3_version_id=s3_version_id,
            mime_type=mime_type,
            original_name=original_name,
            created_by=created_by,
        )
        created = await self.create(version)
        logger.info(f"Created version {created.id} of object {object_id}")
        return created
