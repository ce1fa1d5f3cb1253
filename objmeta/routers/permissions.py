"""
Permissions Router

Search, grant and revoke explicit object permissions.
Managing the grants of an object requires MANAGE on it.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Query, status

from objmeta.core.access import ManagedObject, object_or_404
from objmeta.core.auth import AuthenticatedIdentity, CurrentIdentity
from objmeta.core.database import DbSession
from objmeta.models.contracts.permissions import (
    PermissionGrant,
    PermissionPublic,
    PermissionRevokeResponse,
)
from objmeta.models.enums import PermissionCode
from objmeta.repositories.permissions import PermissionRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/permission", tags=["Permissions"])
object_router = APIRouter(prefix="/api/v1/object/{object_id}/permission", tags=["Permissions"])


@router.get("")
async def search_permissions(
    db: DbSession,
    identity: AuthenticatedIdentity,
    object_id: list[UUID] | None = Query(default=None),
    user_id: list[UUID] | None = Query(default=None),
    permission_code: list[PermissionCode] | None = Query(default=None),
) -> list[PermissionPublic]:
    """
    Search grants.

    Every filter is optional and may be repeated; repeated values match any
    of them, different filters must all match.
    """
    grants = await PermissionRepository(db).search(
        object_ids=object_id,
        user_ids=user_id,
        permission_codes=permission_code,
    )
    return [PermissionPublic.model_validate(g) for g in grants]


@object_router.get("")
async def list_object_permissions(
    object_id: UUID,
    db: DbSession,
    context: ManagedObject,
) -> list[PermissionPublic]:
    """List every grant on an object."""
    object_or_404(context)
    grants = await PermissionRepository(db).search(object_ids=[object_id])
    return [PermissionPublic.model_validate(g) for g in grants]


@object_router.put("", status_code=status.HTTP_200_OK)
async def grant_object_permissions(
    object_id: UUID,
    request: PermissionGrant,
    db: DbSession,
    identity: CurrentIdentity,
    context: ManagedObject,
) -> list[PermissionPublic]:
    """
    Grant permission codes on an object to a user.

    Codes the user already holds are left as they are.

    Returns:
        The grants that were added
    """
    object_or_404(context)
    granted = await PermissionRepository(db).grant(
        object_id,
        request.user_id,
        request.permission_codes,
        actor_id=identity.actor_id,
    )
    return [PermissionPublic.model_validate(g) for g in granted]


@object_router.delete("")
async def revoke_object_permissions(
    object_id: UUID,
    db: DbSession,
    context: ManagedObject,
    user_id: list[UUID] | None = Query(default=None),
    permission_code: list[PermissionCode] | None = Query(default=None),
) -> PermissionRevokeResponse:
    """
    Revoke grants on an object.

    Without filters every grant on the object is revoked.
    """
    object_or_404(context)
    revoked = await PermissionRepository(db).revoke(
        object_id, user_ids=user_id, codes=permission_code
    )
    return PermissionRevokeResponse(object_id=object_id, revoked=revoked)
