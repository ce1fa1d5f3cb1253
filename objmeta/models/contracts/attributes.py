"""
Tag and metadata contract models.

Provides Pydantic models for API request/response handling.
"""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class AttributePair(BaseModel):
    """A single key/value attribute as supplied by a caller."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(min_length=1, max_length=255)
    value: str = Field(min_length=1, max_length=255)


class AttributeMatcher(BaseModel):
    """
    Selects associations to remove from a version.

    A matcher without a value (or with an empty value) selects every
    association of the version carrying that key.
    """

    model_config = ConfigDict(frozen=True)

    key: str = Field(min_length=1, max_length=255)
    value: str | None = Field(default=None, max_length=255)

    @property
    def key_only(self) -> bool:
        return not self.value


class AttributePublic(BaseModel):
    """Attribute output for API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    key: str
    value: str


class AttributeSetRequest(BaseModel):
    """Input for replacing or extending a version's attribute set."""

    attributes: list[AttributePair] = Field(default_factory=list)


class AttributeRemoveRequest(BaseModel):
    """Input for removing attributes from a version."""

    attributes: list[AttributeMatcher] = Field(min_length=1)


class VersionAttributesResponse(BaseModel):
    """Attributes currently associated with a version."""

    version_id: UUID
    attributes: list[AttributePublic]
