"""
Authentication

Provides FastAPI dependencies that turn the Authorization header into a
RequestIdentity, after checking that the presented auth type suits the
server's configured auth mode.

Server mode vs. presented type:
- BASIC-only mode rejects BEARER credentials
- OIDC-only mode rejects BASIC credentials
- every other combination passes

A rejected combination is a server configuration fact and is reported as
HTTP 501 with the mode and type in the detail.
"""

import logging
from dataclasses import dataclass, field
from typing import Annotated, Any, Mapping
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import (
    HTTPAuthorizationCredentials,
    HTTPBasic,
    HTTPBasicCredentials,
    HTTPBearer,
)

from objmeta.config import Settings, get_settings
from objmeta.core.constants import AUTH_MODE_MISMATCH_DETAIL, SYSTEM_USER_UUID
from objmeta.core.exceptions import AuthModeMismatchError
from objmeta.core.security import decode_token, verify_basic_credentials
from objmeta.models.enums import AuthMode, AuthType

logger = logging.getLogger(__name__)

# Credential schemes; neither raises when its header is absent
bearer_scheme = HTTPBearer(auto_error=False)
basic_scheme = HTTPBasic(auto_error=False)

BearerCredentials = Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)]
BasicCredentials = Annotated[HTTPBasicCredentials | None, Depends(basic_scheme)]


@dataclass(frozen=True)
class RequestIdentity:
    """
    Identity derived from the verified credentials of one request.

    subject_id is only set for verified bearer tokens carrying a `sub` claim.
    """
    auth_type: AuthType
    subject_id: str | None = None
    claims: Mapping[str, Any] = field(default_factory=dict)

    @property
    def is_bearer(self) -> bool:
        return self.auth_type == AuthType.BEARER

    @property
    def actor_id(self) -> UUID:
        """Subject as a UUID for audit columns, or the system user."""
        if self.subject_id:
            try:
                return UUID(self.subject_id)
            except ValueError:
                pass
        return SYSTEM_USER_UUID


ANONYMOUS = RequestIdentity(auth_type=AuthType.NONE)


def is_auth_type_supported(auth_mode: AuthMode, auth_type: AuthType) -> bool:
    """Whether a request presenting `auth_type` may be served in `auth_mode`."""
    if auth_mode == AuthMode.BASIC and auth_type == AuthType.BEARER:
        return False
    if auth_mode == AuthMode.OIDC and auth_type == AuthType.BASIC:
        return False
    return True


def check_app_mode(auth_mode: AuthMode, auth_type: AuthType) -> None:
    """
    Raise if the auth type does not suit the auth mode.

    Raises:
        AuthModeMismatchError: Unsupported combination
    """
    if not is_auth_type_supported(auth_mode, auth_type):
        raise AuthModeMismatchError(auth_mode, auth_type)


def presented_auth_type(
    bearer: HTTPAuthorizationCredentials | None,
    basic: HTTPBasicCredentials | None,
) -> AuthType:
    """Auth type of whichever scheme found credentials."""
    if bearer is not None:
        return AuthType.BEARER
    if basic is not None:
        return AuthType.BASIC
    return AuthType.NONE


async def require_supported_auth_type(
    bearer: BearerCredentials,
    basic: BasicCredentials,
    settings: Annotated[Settings, Depends(get_settings)],
) -> AuthType:
    """
    Reject the request if its auth type does not suit the server mode.

    Raises:
        HTTPException: 501 for an unsupported combination
    """
    auth_type = presented_auth_type(bearer, basic)
    auth_mode = settings.auth_mode

    try:
        check_app_mode(auth_mode, auth_type)
    except AuthModeMismatchError as e:
        logger.info(
            str(e),
            extra={"function": "check_app_mode", "auth_mode": auth_mode.value, "auth_type": auth_type.value},
        )
        raise HTTPException(
            status_code=status.HTTP_501_NOT_IMPLEMENTED,
            detail={
                "detail": AUTH_MODE_MISMATCH_DETAIL,
                "auth_mode": auth_mode.value,
                "auth_type": auth_type.value,
            },
        )

    return auth_type


async def get_request_identity(
    auth_type: Annotated[AuthType, Depends(require_supported_auth_type)],
    bearer: BearerCredentials,
    basic: BasicCredentials,
    settings: Annotated[Settings, Depends(get_settings)],
) -> RequestIdentity:
    """
    Build the identity of the current request.

    Credentials for an enabled mechanism must verify (401 otherwise).
    Credentials for a mechanism this deployment does not enable are ignored
    and the request proceeds without a subject.

    Returns:
        RequestIdentity for the request
    """
    if auth_type == AuthType.BEARER and bearer is not None:
        if not settings.oidc_enabled:
            logger.debug("Ignoring bearer token: OIDC is not enabled")
            return RequestIdentity(auth_type=AuthType.BEARER)

        payload = decode_token(bearer.credentials, settings)
        if payload is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid authorization token",
                headers={"WWW-Authenticate": "Bearer"},
            )
        return RequestIdentity(
            auth_type=AuthType.BEARER,
            subject_id=payload.get("sub") or None,
            claims=payload,
        )

    if auth_type == AuthType.BASIC and basic is not None:
        if not settings.basic_auth_enabled:
            logger.debug("Ignoring basic credentials: basic auth is not enabled")
            return RequestIdentity(auth_type=AuthType.BASIC)

        if not verify_basic_credentials(basic.username, basic.password, settings=settings):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid authorization credentials",
                headers={"WWW-Authenticate": "Basic"},
            )
        return RequestIdentity(auth_type=AuthType.BASIC)

    return ANONYMOUS


async def get_authenticated_identity(
    identity: Annotated[RequestIdentity, Depends(get_request_identity)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> RequestIdentity:
    """
    Require a bearer subject when permissions are enforced.

    Used by endpoints that act outside any existing object (creating objects,
    searching grants), where the object gate does not apply.
    """
    if settings.oidc_enabled and not (identity.is_bearer and identity.subject_id):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity


# Type aliases for dependency injection
CurrentIdentity = Annotated[RequestIdentity, Depends(get_request_identity)]
AuthenticatedIdentity = Annotated[RequestIdentity, Depends(get_authenticated_identity)]
