"""
Object Lifecycle Service

Registers objects and versions together with their tags, metadata and the
creator's grants, and deletes versions. Each operation is a single unit of
work: the attribute services join the caller's session, so a failure in any
step leaves nothing behind.
"""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from objmeta.core.constants import SYSTEM_USER_UUID
from objmeta.core.database import unit_of_work
from objmeta.core.exceptions import ObjectPathConflictError
from objmeta.models.contracts.objects import ObjectCreate, VersionCreate
from objmeta.models.enums import PermissionCode
from objmeta.models.orm.objects import StoredObject, Version
from objmeta.repositories.objects import ObjectRepository, VersionRepository
from objmeta.repositories.permissions import PermissionRepository
from objmeta.services.attributes import AttributeService, metadata_service, tag_service

logger = logging.getLogger(__name__)


class ObjectService:
    """
    Object and version registration.

    Usage:
        service = ObjectService()
        obj, version = await service.create_object(data, actor_id, session=db)
    """

    def __init__(
        self,
        tags: AttributeService = tag_service,
        metadata: AttributeService = metadata_service,
    ):
        self.tags = tags
        self.metadata = metadata

    async def _apply_attributes(
        self,
        db: AsyncSession,
        version_id: UUID,
        data: VersionCreate,
        actor_id: UUID,
    ) -> None:
        await self.metadata.replace_attribute_set(
            version_id, data.metadata, actor_id=actor_id, session=db
        )
        await self.tags.replace_attribute_set(
            version_id, data.tags, actor_id=actor_id, session=db
        )

    async def create_object(
        self,
        data: ObjectCreate,
        actor_id: UUID = SYSTEM_USER_UUID,
        session: AsyncSession | None = None,
    ) -> tuple[StoredObject, Version]:
        """
        Register an object with its first version.

        An identified creator receives every permission code on the object.

        Returns:
            (object, version)

        Raises:
            ObjectPathConflictError: Path already registered
            AttributeConflictError: Metadata carries a key with two values
        """
        async with unit_of_work(session) as db:
            objects = ObjectRepository(db)
            if await objects.get_by_path(data.path) is not None:
                raise ObjectPathConflictError(data.path)

            obj = await objects.create_object(
                path=data.path, public=data.public, created_by=actor_id
            )
            version = await VersionRepository(db).create_version(
                object_id=obj.id,
                created_by=actor_id,
                s3_version_id=data.s3_version_id,
                mime_type=data.mime_type,
                original_name=data.original_name,
            )
            await self._apply_attributes(db, version.id, data, actor_id)

            if actor_id != SYSTEM_USER_UUID:
                await PermissionRepository(db).grant(
                    obj.id, actor_id, list(PermissionCode), actor_id
                )

            return obj, version

    async def create_version(
        self,
        object_id: UUID,
        data: VersionCreate,
        actor_id: UUID = SYSTEM_USER_UUID,
        session: AsyncSession | None = None,
    ) -> Version:
        """
        Register a new version with its metadata and tags.

        Raises:
            LookupError: Object does not exist
            AttributeConflictError: Metadata carries a key with two values
        """
        async with unit_of_work(session) as db:
            if await ObjectRepository(db).get_by_id(object_id) is None:
                raise LookupError(f"Object {object_id} not found")

            version = await VersionRepository(db).create_version(
                object_id=object_id,
                created_by=actor_id,
                s3_version_id=data.s3_version_id,
                mime_type=data.mime_type,
                original_name=data.original_name,
            )
            await self._apply_attributes(db, version.id, data, actor_id)
            return version

    async def delete_version(
        self,
        object_id: UUID,
        version_id: UUID,
        session: AsyncSession | None = None,
    ) -> bool:
        """
        Delete a version and prune attributes it alone referenced.

        Its associations go with it (ON DELETE CASCADE).

        Returns:
            False if the version does not belong to the object
        """
        async with unit_of_work(session) as db:
            versions = VersionRepository(db)
            version = await versions.get_for_object(object_id, version_id)
            if version is None:
                return False

            await versions.delete(version)
            pruned_tags = await self.tags.prune_orphaned(session=db)
            pruned_metadata = await self.metadata.prune_orphaned(session=db)

            logger.info(
                f"Deleted version {version_id} of object {object_id} "
                f"(pruned {pruned_tags} tag(s), {pruned_metadata} metadata record(s))"
            )
            return True


object_service = ObjectService()
