"""
ObjectPermission ORM model.

Explicit grants of a permission code on an object to a subject.
"""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Enum as SQLAlchemyEnum, ForeignKey, Index, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from objmeta.models.enums import PermissionCode
from objmeta.models.orm.base import Base

if TYPE_CHECKING:
    from objmeta.models.orm.objects import StoredObject


class ObjectPermission(Base):
    """Object permission grant table."""

    __tablename__ = "object_permission"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    object_id: Mapped[UUID] = mapped_column(
        ForeignKey("object.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[UUID] = mapped_column(nullable=False)
    permission_code: Mapped[PermissionCode] = mapped_column(
        SQLAlchemyEnum(
            PermissionCode,
            name="permission_code",
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    created_by: Mapped[UUID | None] = mapped_column(default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, server_default=text("NOW()")
    )

    # Relationships
    object: Mapped["StoredObject"] = relationship(back_populates="permissions")

    __table_args__ = (
        UniqueConstraint(
            "object_id", "user_id", "permission_code",
            name="uq_object_permission_grant",
        ),
        # Gate lookup: all codes held by one subject on one object
        Index("ix_object_permission_lookup", "object_id", "user_id"),
        Index("ix_object_permission_user_id", "user_id"),
    )
