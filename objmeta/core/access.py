"""
Object Access Gate

Decides whether the current request may act on an object. Evaluated in order:

1. Enforcement disabled (no identity provider configured) - allow
2. No object context resolved - deny as not found
3. Public object and READ requested - allow
4. No bearer identity with a subject - deny as missing identity
5. Subject lacks the requested code on the object - deny; otherwise allow

Every denial reaches the caller as the same HTTP 403. A missing object is
never reported as 404, so object ids cannot be enumerated. The actual reason is
only logged.

The enforcement mode is resolved once at startup (see objmeta.main) and
read from app.state, not looked up from configuration per request.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Awaitable, Callable
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status

from objmeta.config import Settings, get_settings
from objmeta.core.auth import CurrentIdentity, RequestIdentity
from objmeta.core.constants import FORBIDDEN_DETAIL
from objmeta.core.database import DbSession
from objmeta.core.exceptions import AccessDeniedError
from objmeta.models.enums import EnforcementMode, PermissionCode
from objmeta.repositories.permissions import PermissionRepository
from objmeta.services.object_context import ObjectContext, resolve_object_context
from objmeta.services.storage import StorageService, get_storage_service

logger = logging.getLogger(__name__)

PermissionLookup = Callable[[UUID, UUID], Awaitable[set[PermissionCode]]]


class DenialReason(str, Enum):
    """Why the gate denied a request (logged, never returned)."""
    NOT_FOUND = "Missing object record"
    MISSING_IDENTITY = "Missing user identification"
    INSUFFICIENT_PERMISSION = "User lacks required permission"


@dataclass(frozen=True)
class AccessDecision:
    """Outcome of an authorization check."""
    allowed: bool
    reason: DenialReason | None = None

    def raise_for_denial(self) -> None:
        """
        Raises:
            AccessDeniedError: If the decision is a denial
        """
        if not self.allowed:
            raise AccessDeniedError(self.reason.value if self.reason else "denied")


ALLOW = AccessDecision(allowed=True)


def resolve_enforcement_mode(settings: Settings) -> EnforcementMode:
    """Permissions are enforced exactly when an identity provider is configured."""
    return EnforcementMode.ENFORCED if settings.oidc_enabled else EnforcementMode.DISABLED


class AccessGate:
    """
    Authorization decision for one object and one requested permission.

    Example:
        gate = AccessGate(EnforcementMode.ENFORCED, PermissionRepository(db).codes_for)
        decision = await gate.authorize(PermissionCode.READ, context, identity)
    """

    def __init__(self, mode: EnforcementMode, permission_lookup: PermissionLookup):
        self.mode = mode
        self._permission_lookup = permission_lookup

    async def authorize(
        self,
        permission: PermissionCode,
        context: ObjectContext | None,
        identity: RequestIdentity | None,
    ) -> AccessDecision:
        """
        Decide whether `identity` may exercise `permission` on `context`.

        Args:
            permission: Requested permission code
            context: Resolved object snapshot, None if resolution failed
            identity: Identity of the request, None if unauthenticated

        Returns:
            AccessDecision
        """
        if self.mode == EnforcementMode.DISABLED:
            return ALLOW

        if context is None:
            return self._deny(DenialReason.NOT_FOUND, permission, None, identity)

        if context.public and permission == PermissionCode.READ:
            return ALLOW

        if identity is None or not identity.is_bearer or not identity.subject_id:
            return self._deny(DenialReason.MISSING_IDENTITY, permission, context, identity)

        try:
            subject = UUID(identity.subject_id)
        except ValueError:
            # Grants are keyed by UUID, so this subject holds none
            granted: set[PermissionCode] = set()
        else:
            granted = await self._permission_lookup(context.id, subject)

        if permission not in granted:
            return self._deny(DenialReason.INSUFFICIENT_PERMISSION, permission, context, identity)

        return ALLOW

    def _deny(
        self,
        reason: DenialReason,
        permission: PermissionCode,
        context: ObjectContext | None,
        identity: RequestIdentity | None,
    ) -> AccessDecision:
        logger.info(
            f"Access denied: {reason.value}",
            extra={
                "function": "authorize",
                "permission": permission.value,
                "object_id": str(context.id) if context else None,
                "subject_id": identity.subject_id if identity else None,
            },
        )
        return AccessDecision(allowed=False, reason=reason)


def get_enforcement_mode(request: Request) -> EnforcementMode:
    """Enforcement mode chosen at startup."""
    mode = getattr(request.app.state, "enforcement_mode", None)
    if mode is None:
        mode = resolve_enforcement_mode(get_settings())
        request.app.state.enforcement_mode = mode
    return mode


async def get_object_context(
    object_id: UUID,
    request: Request,
    db: DbSession,
    storage: Annotated[StorageService, Depends(get_storage_service)],
) -> ObjectContext | None:
    """
    Resolve the object named by the `object_id` path parameter.

    The snapshot is attached to request.state.current_object once resolved.
    """
    context = await resolve_object_context(object_id, db, storage)
    request.state.current_object = context
    return context


def require_permission(permission: PermissionCode):
    """
    Build a dependency that authorizes `permission` on the path's object.

    Usage:
        @router.get("/{object_id}")
        async def read(context: Annotated[ObjectContext | None, Depends(require_permission(PermissionCode.READ))]):
            ...

    Returns:
        Dependency returning the object context (None only when enforcement
        is disabled and the object could not be resolved)
    """

    async def dependency(
        db: DbSession,
        identity: CurrentIdentity,
        mode: Annotated[EnforcementMode, Depends(get_enforcement_mode)],
        context: Annotated[ObjectContext | None, Depends(get_object_context)],
    ) -> ObjectContext | None:
        gate = AccessGate(mode, PermissionRepository(db).codes_for)
        decision = await gate.authorize(permission, context, identity)
        try:
            decision.raise_for_denial()
        except AccessDeniedError:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=FORBIDDEN_DETAIL,
            )
        return context

    return dependency


def object_or_404(context: ObjectContext | None) -> ObjectContext:
    """
    Unwrap a context that passed the gate.

    Only reachable with None when enforcement is disabled, where an unknown
    object is reported honestly.
    """
    if context is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Object not found",
        )
    return context


# Type aliases for dependency injection
ReadableObject = Annotated[ObjectContext | None, Depends(require_permission(PermissionCode.READ))]
UpdatableObject = Annotated[ObjectContext | None, Depends(require_permission(PermissionCode.UPDATE))]
DeletableObject = Annotated[ObjectContext | None, Depends(require_permission(PermissionCode.DELETE))]
ManagedObject = Annotated[ObjectContext | None, Depends(require_permission(PermissionCode.MANAGE))]
