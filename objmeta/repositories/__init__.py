# Data access layer - PostgreSQL repositories
from objmeta.repositories.attributes import (
    METADATA_STORE,
    TAG_STORE,
    AttributeRepository,
    AttributeStore,
)
from objmeta.repositories.base import BaseRepository
from objmeta.repositories.objects import ObjectRepository, VersionRepository
from objmeta.repositories.permissions import PermissionRepository

__all__ = [
    "AttributeRepository",
    "AttributeStore",
    "BaseRepository",
    "ObjectRepository",
    "PermissionRepository",
    "VersionRepository",
    # Attribute dictionaries
    "TAG_STORE",
    "METADATA_STORE",
]
