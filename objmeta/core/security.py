"""
Security Utilities

Bearer token verification and HTTP Basic credential checks.

Tokens are issued by an external OIDC provider; this module only verifies
them against the configured public key, issuer and audience.
"""

import logging
import secrets
from typing import Any

import jwt

from objmeta.config import Settings, get_settings

logger = logging.getLogger(__name__)


def decode_token(token: str, settings: Settings | None = None) -> dict[str, Any] | None:
    """
    Decode and validate a bearer token.

    Args:
        token: JWT token string to decode
        settings: Settings to verify against (defaults to application settings)

    Returns:
        Decoded token payload or None if invalid/expired
    """
    settings = settings or get_settings()

    if not settings.oidc_public_key:
        logger.warning("Bearer token presented but no OIDC public key is configured")
        return None

    try:
        return jwt.decode(
            token,
            settings.oidc_public_key,
            algorithms=settings.oidc_algorithms,
            issuer=settings.oidc_issuer,
            audience=settings.oidc_audience,
            options={"verify_aud": settings.oidc_audience is not None},
        )
    except jwt.ExpiredSignatureError:
        logger.debug("Bearer token expired")
        return None
    except jwt.InvalidTokenError as e:
        logger.debug(f"Bearer token rejected: {e}")
        return None


def verify_basic_credentials(
    username: str,
    password: str,
    settings: Settings | None = None,
) -> bool:
    """
    Check HTTP Basic credentials against the configured pair.

    Uses constant-time comparison for both fields.
    """
    settings = settings or get_settings()

    if not settings.basic_auth_username or not settings.basic_auth_password:
        logger.warning("Basic credentials presented but none are configured")
        return False

    username_ok = secrets.compare_digest(
        username.encode("utf-8"), settings.basic_auth_username.encode("utf-8")
    )
    password_ok = secrets.compare_digest(
        password.encode("utf-8"), settings.basic_auth_password.encode("utf-8")
    )
    return username_ok and password_ok
