"""
Tagging and Metadata Routers

Both attribute dictionaries expose the same four operations on a version:

- GET: list the version's attributes
- PUT: replace the version's whole set
- PATCH: add attributes (metadata overwrites colliding keys)
- DELETE: remove by key, or by key and value

`version_id` selects the version; without it the object's latest version
is used. Reading requires READ on the object; changes require UPDATE.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from objmeta.core.access import ReadableObject, UpdatableObject, object_or_404
from objmeta.core.auth import CurrentIdentity
from objmeta.core.database import DbSession
from objmeta.core.exceptions import AttributeConflictError, VersionNotFoundError
from objmeta.models.contracts.attributes import (
    AttributePublic,
    AttributeRemoveRequest,
    AttributeSetRequest,
    VersionAttributesResponse,
)
from objmeta.models.orm.objects import Version
from objmeta.repositories.objects import VersionRepository
from objmeta.services.attributes import AttributeService, metadata_service, tag_service

logger = logging.getLogger(__name__)


async def _resolve_version(
    db: AsyncSession,
    object_id: UUID,
    version_id: UUID | None,
) -> Version:
    versions = VersionRepository(db)
    if version_id is not None:
        version = await versions.get_for_object(object_id, version_id)
    else:
        version = await versions.get_latest(object_id)

    if version is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Version not found")
    return version


def _response(version_id: UUID, records: list) -> VersionAttributesResponse:
    return VersionAttributesResponse(
        version_id=version_id,
        attributes=[AttributePublic.model_validate(r) for r in records],
    )


def build_attribute_router(service: AttributeService, segment: str, tag: str) -> APIRouter:
    """
    Build the router for one attribute dictionary.

    Args:
        service: Reconciliation service for the dictionary
        segment: Path segment under the object, e.g. "tagging"
        tag: OpenAPI tag
    """
    router = APIRouter(prefix=f"/api/v1/object/{{object_id}}/{segment}", tags=[tag])

    @router.get("")
    async def list_attributes(
        object_id: UUID,
        db: DbSession,
        context: ReadableObject,
        version_id: UUID | None = Query(default=None),
    ) -> VersionAttributesResponse:
        object_or_404(context)
        version = await _resolve_version(db, object_id, version_id)
        records = await service.list_attributes(version.id, session=db)
        return _response(version.id, records)

    @router.put("")
    async def replace_attributes(
        object_id: UUID,
        request: AttributeSetRequest,
        db: DbSession,
        identity: CurrentIdentity,
        context: UpdatableObject,
        version_id: UUID | None = Query(default=None),
    ) -> VersionAttributesResponse:
        object_or_404(context)
        version = await _resolve_version(db, object_id, version_id)
        try:
            records = await service.replace_attribute_set(
                version.id, request.attributes, actor_id=identity.actor_id, session=db
            )
        except AttributeConflictError as e:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
        except VersionNotFoundError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Version not found")

        return _response(version.id, records)

    @router.patch("")
    async def add_attributes(
        object_id: UUID,
        request: AttributeSetRequest,
        db: DbSession,
        identity: CurrentIdentity,
        context: UpdatableObject,
        version_id: UUID | None = Query(default=None),
    ) -> VersionAttributesResponse:
        object_or_404(context)
        version = await _resolve_version(db, object_id, version_id)
        try:
            await service.associate_attributes(
                version.id, request.attributes, actor_id=identity.actor_id, session=db
            )
        except AttributeConflictError as e:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
        except VersionNotFoundError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Version not found")

        records = await service.list_attributes(version.id, session=db)
        return _response(version.id, records)

    @router.delete("")
    async def remove_attributes(
        object_id: UUID,
        request: AttributeRemoveRequest,
        db: DbSession,
        context: UpdatableObject,
        version_id: UUID | None = Query(default=None),
    ) -> VersionAttributesResponse:
        object_or_404(context)
        version = await _resolve_version(db, object_id, version_id)
        try:
            removed = await service.dissociate_attributes(
                version.id, request.attributes, session=db
            )
        except VersionNotFoundError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Version not found")

        logger.debug(f"Removed {removed} {service.store.name} association(s) from {version.id}")
        records = await service.list_attributes(version.id, session=db)
        return _response(version.id, records)

    return router


tagging_router = build_attribute_router(tag_service, "tagging", "Tagging")
metadata_router = build_attribute_router(metadata_service, "metadata", "Metadata")
