"""
Objects Router

Register objects and their versions, read them back and toggle visibility.

Object-scoped endpoints pass through the access gate; a caller lacking the
required permission always receives the same 403, whether or not the object
exists.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from objmeta.core.access import (
    DeletableObject,
    ManagedObject,
    ReadableObject,
    UpdatableObject,
    object_or_404,
)
from objmeta.core.auth import AuthenticatedIdentity, CurrentIdentity
from objmeta.core.database import DbSession
from objmeta.core.exceptions import AttributeConflictError, ObjectPathConflictError
from objmeta.models.contracts.objects import (
    ObjectCreate,
    ObjectCreateResponse,
    ObjectPublic,
    VersionCreate,
    VersionPublic,
)
from objmeta.repositories.objects import ObjectRepository, VersionRepository
from objmeta.services.objects import object_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/object", tags=["Objects"])


# =============================================================================
# Objects
# =============================================================================


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_object(
    request: ObjectCreate,
    db: DbSession,
    identity: AuthenticatedIdentity,
) -> ObjectCreateResponse:
    """
    Register an object and its first version.

    Tags, metadata and the creator's grants are written in the same
    transaction as the records themselves.
    """
    try:
        obj, version = await object_service.create_object(
            request, actor_id=identity.actor_id, session=db
        )
    except ObjectPathConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except AttributeConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    return ObjectCreateResponse(
        object=ObjectPublic.model_validate(obj),
        version=VersionPublic.model_validate(version),
    )


@router.get("/{object_id}")
async def get_object(context: ReadableObject) -> ObjectPublic:
    """Get an object record merged with its storage headers."""
    return ObjectPublic(**object_or_404(context).as_dict())


@router.patch("/{object_id}/public")
async def set_object_public(
    object_id: UUID,
    db: DbSession,
    identity: CurrentIdentity,
    context: ManagedObject,
    public: bool = Query(..., description="Whether anyone may read the object"),
) -> ObjectPublic:
    """Make an object readable by anyone, or revert to grant-only access."""
    current = object_or_404(context)
    obj = await ObjectRepository(db).set_public(object_id, public, identity.actor_id)
    if obj is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Object not found")

    return ObjectPublic(**{**current.as_dict(), "public": obj.public})


# =============================================================================
# Versions
# =============================================================================


@router.get("/{object_id}/version")
async def list_versions(
    object_id: UUID,
    db: DbSession,
    context: ReadableObject,
) -> list[VersionPublic]:
    """List the versions of an object, newest first."""
    object_or_404(context)
    versions = await VersionRepository(db).list_versions(object_id)
    return [VersionPublic.model_validate(v) for v in versions]


@router.post("/{object_id}/version", status_code=status.HTTP_201_CREATED)
async def create_version(
    object_id: UUID,
    request: VersionCreate,
    db: DbSession,
    identity: CurrentIdentity,
    context: UpdatableObject,
) -> VersionPublic:
    """Register a new version together with its metadata and tags."""
    object_or_404(context)
    try:
        version = await object_service.create_version(
            object_id, request, actor_id=identity.actor_id, session=db
        )
    except AttributeConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except LookupError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Object not found")

    return VersionPublic.model_validate(version)


@router.delete("/{object_id}/version/{version_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_version(
    object_id: UUID,
    version_id: UUID,
    db: DbSession,
    context: DeletableObject,
) -> None:
    """Delete a version. Tags and metadata it alone used are removed too."""
    object_or_404(context)
    deleted = await object_service.delete_version(object_id, version_id, session=db)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Version not found")
