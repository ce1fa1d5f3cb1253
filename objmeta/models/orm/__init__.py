"""
SQLAlchemy ORM Models for objmeta

Pure database models using SQLAlchemy 2.0 declarative style.
These models define the database schema and relationships.

For API schemas (Create/Update/Public), see objmeta.models.contracts
"""

from objmeta.models.orm.attributes import Metadata, Tag, VersionMetadata, VersionTag
from objmeta.models.orm.base import Base
from objmeta.models.orm.objects import StoredObject, Version
from objmeta.models.orm.permissions import ObjectPermission

__all__ = [
    # Base
    "Base",
    # Objects
    "StoredObject",
    "Version",
    # Attribute dictionaries
    "Tag",
    "Metadata",
    "VersionTag",
    "VersionMetadata",
    # Permissions
    "ObjectPermission",
]
