"""
Tag, Metadata and version association ORM models.

Tags and metadata are two independent key/value dictionaries shared by every
version. A (key, value) pair is stored once per dictionary; versions reference
it through a junction table carrying creation audit.

Both junction tables expose the attribute foreign key as ``attribute_id`` so
the repository and service layers can treat the two dictionaries generically.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column

from objmeta.models.orm.base import Base


class AttributeMixin:
    """Columns shared by the tag and metadata dictionaries."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    key: Mapped[str] = mapped_column(String(255), nullable=False)
    value: Mapped[str] = mapped_column(String(255), nullable=False)

    @property
    def pair(self) -> tuple[str, str]:
        return (self.key, self.value)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.id} {self.key}={self.value}>"


class Tag(AttributeMixin, Base):
    """Tag dictionary table."""

    __tablename__ = "tag"

    __table_args__ = (
        UniqueConstraint("key", "value", name="uq_tag_key_value"),
        Index("ix_tag_key", "key"),
    )


class Metadata(AttributeMixin, Base):
    """Metadata dictionary table."""

    __tablename__ = "metadata"

    __table_args__ = (
        UniqueConstraint("key", "value", name="uq_metadata_key_value"),
        Index("ix_metadata_key", "key"),
    )


class VersionTag(Base):
    """Version-Tag association table."""

    __tablename__ = "version_tag"

    version_id: Mapped[UUID] = mapped_column(
        ForeignKey("version.id", ondelete="CASCADE"), primary_key=True
    )
    attribute_id: Mapped[int] = mapped_column(
        "tag_id", ForeignKey("tag.id", ondelete="CASCADE"), primary_key=True
    )
    created_by: Mapped[UUID | None] = mapped_column(default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, server_default=text("NOW()")
    )

    __table_args__ = (
        # Orphan pruning looks up associations by attribute
        Index("ix_version_tag_tag_id", "tag_id"),
    )


class VersionMetadata(Base):
    """Version-Metadata association table."""

    __tablename__ = "version_metadata"

    version_id: Mapped[UUID] = mapped_column(
        ForeignKey("version.id", ondelete="CASCADE"), primary_key=True
    )
    attribute_id: Mapped[int] = mapped_column(
        "metadata_id", ForeignKey("metadata.id", ondelete="CASCADE"), primary_key=True
    )
    created_by: Mapped[UUID | None] = mapped_column(default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, server_default=text("NOW()")
    )

    __table_args__ = (
        Index("ix_version_metadata_metadata_id", "metadata_id"),
    )
