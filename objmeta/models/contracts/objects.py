"""
Object and version contract models.

Provides Pydantic models for API request/response handling.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from objmeta.models.contracts.attributes import AttributePair


class VersionCreate(BaseModel):
    """Input for registering a version whose bytes were already stored."""

    s3_version_id: str | None = Field(default=None, max_length=1024)
    mime_type: str | None = Field(default=None, max_length=255)
    original_name: str | None = Field(default=None, max_length=1024)
    metadata: list[AttributePair] = Field(default_factory=list)
    tags: list[AttributePair] = Field(default_factory=list)


class ObjectCreate(VersionCreate):
    """Input for registering a new object and its first version."""

    path: str = Field(min_length=1, max_length=1024)
    public: bool = False


class VersionPublic(BaseModel):
    """Version output for API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    object_id: UUID
    s3_version_id: str | None
    mime_type: str | None
    original_name: str | None
    delete_marker: bool
    created_by: UUID | None
    created_at: datetime

    @field_serializer("created_at")
    def serialize_dt(self, dt: datetime | None) -> str | None:
        return dt.isoformat() if dt else None


class ObjectPublic(BaseModel):
    """Object output for API responses, merged with storage head fields."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    path: str
    public: bool
    active: bool
    created_by: UUID | None = None
    created_at: datetime | None = None
    content_length: int | None = None
    content_type: str | None = None
    etag: str | None = None
    s3_version_id: str | None = None
    storage_metadata: dict[str, Any] = Field(default_factory=dict)

    @field_serializer("created_at")
    def serialize_dt(self, dt: datetime | None) -> str | None:
        return dt.isoformat() if dt else None


class ObjectCreateResponse(BaseModel):
    """Result of registering an object."""

    object: ObjectPublic
    version: VersionPublic
