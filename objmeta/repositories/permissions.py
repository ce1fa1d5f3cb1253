"""
Permission Repository

Data access for explicit object permission grants.
"""

import logging
from typing import Iterable
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert

from objmeta.models.enums import PermissionCode
from objmeta.models.orm.permissions import ObjectPermission
from objmeta.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class PermissionRepository(BaseRepository[ObjectPermission]):
    """
    Repository for object permission grants.

    Filters are conjunctive. List-valued filters match by membership;
    a filter left as None matches anything.
    """

    model = ObjectPermission

    async def search(
        self,
        object_ids: list[UUID] | None = None,
        user_ids: list[UUID] | None = None,
        permission_codes: list[PermissionCode] | None = None,
    ) -> list[ObjectPermission]:
        """
        Search grants.

        Args:
            object_ids: Restrict to these objects
            user_ids: Restrict to these subjects
            permission_codes: Restrict to these codes

        Returns:
            Matching grants ordered by object, user and code
        """
        query = select(self.model)

        if object_ids is not None:
            query = query.where(self.model.object_id.in_(object_ids))
        if user_ids is not None:
            query = query.where(self.model.user_id.in_(user_ids))
        if permission_codes is not None:
            query = query.where(self.model.permission_code.in_(permission_codes))

        query = query.order_by(
            self.model.object_id, self.model.user_id, self.model.permission_code
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def codes_for(self, object_id: UUID, user_id: UUID) -> set[PermissionCode]:
        """Return the permission codes a subject holds on an object."""
        result = await self.session.execute(
            select(self.model.permission_code).where(
                self.model.object_id == object_id,
                self.model.user_id == user_id,
            )
        )
        return set(result.scalars().all())

    async def grant(
        self,
        object_id: UUID,
        user_id: UUID,
        codes: Iterable[PermissionCode],
        actor_id: UUID,
    ) -> list[ObjectPermission]:
        """
        Grant codes on an object to a subject.

        Codes the subject already holds are skipped.

        Returns:
            The newly inserted grants
        """
        wanted = list(dict.fromkeys(codes))
        if not wanted:
            return []

        stmt = (
            insert(self.model)
            .values(
                [
                    {
                        "object_id": object_id,
                        "user_id": user_id,
                        "permission_code": code,
                        "created_by": actor_id,
                    }
                    for code in wanted
                ]
            )
            .on_conflict_do_nothing(
                index_elements=["object_id", "user_id", "permission_code"]
            )
            .returning(self.model)
        )
        result = await self.session.scalars(stmt)
        granted = list(result.all())

        logger.info(
            f"Granted {[g.permission_code.value for g in granted]} on object {object_id} "
            f"to user {user_id}"
        )
        return granted

    async def revoke(
        self,
        object_id: UUID,
        user_ids: list[UUID] | None = None,
        codes: list[PermissionCode] | None = None,
    ) -> int:
        """
        Revoke grants on an object.

        Args:
            object_id: Object to revoke on
            user_ids: Subjects to revoke from (None for every subject)
            codes: Codes to revoke (None for every code)

        Returns:
            Number of grants removed
        """
        stmt = delete(self.model).where(self.model.object_id == object_id)
        if user_ids is not None:
            stmt = stmt.where(self.model.user_id.in_(user_ids))
        if codes is not None:
            stmt = stmt.where(self.model.permission_code.in_(codes))

        result = await self.session.execute(
            stmt.execution_options(synchronize_session=False)
        )
        revoked = result.rowcount or 0

        logger.info(f"Revoked {revoked} grant(s) on object {object_id}")
        return revoked
