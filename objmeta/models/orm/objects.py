"""
StoredObject and Version ORM models.

Relational records for objects whose bytes live in external storage.
"""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from objmeta.models.orm.base import Base

if TYPE_CHECKING:
    from objmeta.models.orm.permissions import ObjectPermission


class StoredObject(Base):
    """Object database table."""

    __tablename__ = "object"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    path: Mapped[str] = mapped_column(String(1024), unique=True)
    public: Mapped[bool] = mapped_column(Boolean, default=False, server_default=text("false"))
    active: Mapped[bool] = mapped_column(Boolean, default=True, server_default=text("true"))
    created_by: Mapped[UUID | None] = mapped_column(default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, server_default=text("NOW()")
    )
    updated_by: Mapped[UUID | None] = mapped_column(default=None)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        server_default=text("NOW()"),
        onupdate=datetime.utcnow,
    )

    # Relationships
    versions: Mapped[list["Version"]] = relationship(
        back_populates="object",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    permissions: Mapped[list["ObjectPermission"]] = relationship(
        back_populates="object",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Version(Base):
    """Object version database table."""

    __tablename__ = "version"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    object_id: Mapped[UUID] = mapped_column(
        ForeignKey("object.id", ondelete="CASCADE"), nullable=False
    )
    s3_version_id: Mapped[str | None] = mapped_column(String(1024), default=None)
    mime_type: Mapped[str | None] = mapped_column(String(255), default=None)
    original_name: Mapped[str | None] = mapped_column(String(1024), default=None)
    delete_marker: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=text("false")
    )
    created_by: Mapped[UUID | None] = mapped_column(default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, server_default=text("NOW()")
    )
    updated_by: Mapped[UUID | None] = mapped_column(default=None)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        server_default=text("NOW()"),
        onupdate=datetime.utcnow,
    )

    # Relationships
    object: Mapped["StoredObject"] = relationship(back_populates="versions")

    __table_args__ = (
        Index("ix_version_object_id", "object_id"),
        Index("ix_version_object_created", "object_id", "created_at"),
    )
