"""
Object permission contract models.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from objmeta.models.enums import PermissionCode


class PermissionGrant(BaseModel):
    """Input for granting permission codes on an object to a user."""

    user_id: UUID
    permission_codes: list[PermissionCode] = Field(min_length=1)


class PermissionPublic(BaseModel):
    """Permission grant output for API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    object_id: UUID
    user_id: UUID
    permission_code: PermissionCode
    created_by: UUID | None
    created_at: datetime

    @field_serializer("created_at")
    def serialize_dt(self, dt: datetime | None) -> str | None:
        return dt.isoformat() if dt else None


class PermissionRevokeResponse(BaseModel):
    """Result of revoking grants."""

    object_id: UUID
    revoked: int
