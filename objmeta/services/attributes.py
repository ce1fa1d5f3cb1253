"""
Attribute Reconciliation Service

Keeps the tag or metadata set of an object version in line with what the
caller asks for, while sharing dictionary records between versions and
removing records no version uses any more.

Operations:
1. replace_attribute_set - the incoming set becomes the version's whole set
2. associate_attributes - add to the version's set
3. dissociate_attributes - remove by exact pair, or every value of a key
4. prune_orphaned - delete dictionary records without associations

Every operation runs inside one unit of work. Pass `session` to join a
transaction owned by the caller (for example creating a version and its
metadata together); otherwise the operation opens, commits or rolls back
its own. Nothing is ever partially applied.

Metadata carries one value per key per version. replace_attribute_set
rejects an incoming metadata set holding a key twice with different values;
associate_attributes overwrites the existing value of a colliding key.
"""

import logging
from typing import Callable, Iterable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from objmeta.core.constants import SYSTEM_USER_UUID
from objmeta.core.database import unit_of_work
from objmeta.core.exceptions import AttributeConflictError, VersionNotFoundError
from objmeta.models.contracts.attributes import AttributeMatcher, AttributePair
from objmeta.repositories.attributes import (
    METADATA_STORE,
    TAG_STORE,
    AttributeRepository,
    AttributeStore,
    Pair,
)

logger = logging.getLogger(__name__)

RepositoryFactory = Callable[[AsyncSession, AttributeStore], AttributeRepository]


def _as_pairs(attributes: Iterable[AttributePair | Pair]) -> list[Pair]:
    """Normalise input to distinct (key, value) tuples, keeping order."""
    pairs = (
        (a.key, a.value) if isinstance(a, AttributePair) else (a[0], a[1])
        for a in attributes
    )
    return list(dict.fromkeys(pairs))


class AttributeService:
    """
    Reconciliation engine for one attribute dictionary.

    Use the module-level `tag_service` and `metadata_service` instances.
    """

    def __init__(
        self,
        store: AttributeStore,
        repository_factory: RepositoryFactory = AttributeRepository,
    ):
        self.store = store
        self._repository_factory = repository_factory

    def _repository(self, session: AsyncSession) -> AttributeRepository:
        return self._repository_factory(session, self.store)

    def _check_single_value(self, pairs: list[Pair]) -> None:
        """Reject one key carrying several values when the store forbids it."""
        if not self.store.single_value_per_key:
            return

        seen: dict[str, str] = {}
        conflicts: list[str] = []
        for key, value in pairs:
            if key in seen and seen[key] != value and key not in conflicts:
                conflicts.append(key)
            seen.setdefault(key, value)

        if conflicts:
            raise AttributeConflictError(self.store.name, conflicts)

    async def _lock(self, repo: AttributeRepository, version_id: UUID) -> None:
        if not await repo.lock_version(version_id):
            raise VersionNotFoundError(version_id)

    async def _dissociate_ids(
        self,
        repo: AttributeRepository,
        version_id: UUID,
        attribute_ids: list[int],
    ) -> int:
        """Drop joins for this version, then prune what became orphaned."""
        removed = await repo.delete_associations(version_id, attribute_ids)
        if removed:
            await repo.prune_orphaned()
        return removed

    async def _associate(
        self,
        repo: AttributeRepository,
        version_id: UUID,
        pairs: list[Pair],
        actor_id: UUID,
    ) -> list:
        """Resolve records for pairs and join those the version lacks."""
        records = await repo.create_attributes(pairs)
        joined = await repo.associated_ids(version_id)

        missing = [record.id for record in records if record.id not in joined]
        if missing:
            await repo.insert_associations(version_id, missing, actor_id)
            logger.debug(
                f"Associated {len(missing)} {self.store.name} record(s) with version {version_id}"
            )
        return records

    async def create_attributes(
        self,
        attributes: Iterable[AttributePair | Pair],
        session: AsyncSession | None = None,
    ) -> list:
        """
        Resolve dictionary records for pairs, creating the missing ones.

        Returns:
            One record per distinct input pair
        """
        pairs = _as_pairs(attributes)
        async with unit_of_work(session) as db:
            return await self._repository(db).create_attributes(pairs)

    async def list_attributes(
        self,
        version_id: UUID,
        session: AsyncSession | None = None,
    ) -> list:
        """Return the records currently associated with a version."""
        async with unit_of_work(session) as db:
            return await self._repository(db).list_for_version(version_id)

    async def replace_attribute_set(
        self,
        version_id: UUID,
        attributes: Iterable[AttributePair | Pair],
        actor_id: UUID = SYSTEM_USER_UUID,
        session: AsyncSession | None = None,
    ) -> list:
        """
        Make `attributes` the complete set associated with a version.

        Associations whose exact (key, value) pair is absent from the incoming
        set are removed from this version only; dictionary records left without
        any association are pruned. Missing records are created and joined with
        `actor_id` as creator. An empty set clears the version.

        Calling this twice with the same set performs no writes the second time.

        Args:
            version_id: Version to reconcile
            attributes: The definitive set
            actor_id: Actor recorded on new associations
            session: Caller-owned unit of work to join

        Returns:
            The records associated with the version afterwards

        Raises:
            AttributeConflictError: Metadata set holds a key with two values
            VersionNotFoundError: The version does not exist
        """
        pairs = _as_pairs(attributes)
        self._check_single_value(pairs)

        async with unit_of_work(session) as db:
            repo = self._repository(db)
            await self._lock(repo, version_id)

            wanted = set(pairs)
            current = await repo.list_for_version(version_id)
            stale = [record.id for record in current if record.pair not in wanted]
            if stale:
                removed = await self._dissociate_ids(repo, version_id, stale)
                logger.debug(
                    f"Dissociated {removed} {self.store.name} record(s) from version {version_id}"
                )

            if pairs:
                await self._associate(repo, version_id, pairs, actor_id)

            return await repo.list_for_version(version_id)

    async def associate_attributes(
        self,
        version_id: UUID,
        attributes: Iterable[AttributePair | Pair],
        actor_id: UUID = SYSTEM_USER_UUID,
        session: AsyncSession | None = None,
    ) -> list:
        """
        Add attributes to a version without removing others.

        For single-value stores, an incoming key replaces the value the version
        currently carries for it.

        Returns:
            The records for the incoming pairs
        """
        pairs = _as_pairs(attributes)
        self._check_single_value(pairs)
        if not pairs:
            return []

        async with unit_of_work(session) as db:
            repo = self._repository(db)
            await self._lock(repo, version_id)

            if self.store.single_value_per_key:
                incoming = dict(pairs)
                current = await repo.list_for_version(version_id)
                overwritten = [
                    record.id for record in current
                    if record.key in incoming and incoming[record.key] != record.value
                ]
                if overwritten:
                    await self._dissociate_ids(repo, version_id, overwritten)

            return await self._associate(repo, version_id, pairs, actor_id)

    async def dissociate_attributes(
        self,
        version_id: UUID,
        matchers: Iterable[AttributeMatcher],
        session: AsyncSession | None = None,
    ) -> int:
        """
        Remove attributes from a version.

        A matcher with a value removes that exact pair. A matcher without a
        value (or with an empty one) removes every value of its key.

        Returns:
            Number of associations removed
        """
        matchers = list(matchers)
        if not matchers:
            return 0

        async with unit_of_work(session) as db:
            repo = self._repository(db)
            await self._lock(repo, version_id)

            removed = 0
            for matcher in matchers:
                if matcher.key_only:
                    removed += await repo.delete_associations_by_key(version_id, matcher.key)

            exact = {(m.key, m.value) for m in matchers if not m.key_only}
            if exact:
                current = await repo.list_for_version(version_id)
                ids = [record.id for record in current if record.pair in exact]
                removed += await repo.delete_associations(version_id, ids)

            if removed:
                await repo.prune_orphaned()
                logger.debug(
                    f"Dissociated {removed} {self.store.name} record(s) from version {version_id}"
                )
            return removed

    async def prune_orphaned(self, session: AsyncSession | None = None) -> int:
        """Delete dictionary records no version references."""
        async with unit_of_work(session) as db:
            return await self._repository(db).prune_orphaned()


tag_service = AttributeService(TAG_STORE)
metadata_service = AttributeService(METADATA_STORE)
