"""
objmeta Models

ORM models (database tables):
    from objmeta.models import StoredObject, Version, Tag
    from objmeta.models.orm.attributes import Tag  # Granular access

Pydantic contracts (API request/response):
    from objmeta.models.contracts.attributes import AttributePair

Enums:
    from objmeta.models import PermissionCode
    from objmeta.models.enums import PermissionCode
"""

# ORM models (database tables)
from objmeta.models.orm import (
    Base,
    Metadata,
    ObjectPermission,
    StoredObject,
    Tag,
    Version,
    VersionMetadata,
    VersionTag,
)

# Enums
from objmeta.models.enums import AuthMode, AuthType, EnforcementMode, PermissionCode

__all__ = [
    # ORM
    "Base",
    "StoredObject",
    "Version",
    "Tag",
    "Metadata",
    "VersionTag",
    "VersionMetadata",
    "ObjectPermission",
    # Enums
    "AuthMode",
    "AuthType",
    "EnforcementMode",
    "PermissionCode",
]
