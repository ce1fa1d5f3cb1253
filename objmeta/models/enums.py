"""
Enumeration types used across the application.
"""

from enum import Enum


class AuthMode(str, Enum):
    """Authentication mechanisms accepted by this deployment"""
    NONE = "NOAUTH"
    BASIC = "BASICAUTH"
    OIDC = "OIDCAUTH"
    FULL = "FULLAUTH"  # Basic and OIDC both enabled


class AuthType(str, Enum):
    """Authentication mechanism presented on a single request"""
    NONE = "NONE"
    BASIC = "BASIC"
    BEARER = "BEARER"


class PermissionCode(str, Enum):
    """Object permission codes"""
    CREATE = "CREATE"
    READ = "READ"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    MANAGE = "MANAGE"


class EnforcementMode(str, Enum):
    """How object permissions are enforced, resolved once at startup"""
    DISABLED = "disabled"  # No identity provider: every request is allowed
    ENFORCED = "enforced"
