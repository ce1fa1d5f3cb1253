"""
Attribute Repository

Data access for the tag and metadata dictionaries and their version
association tables.

One repository class serves both dictionaries. Which tables it works on is
described by an AttributeStore, of which there are exactly two:
TAG_STORE and METADATA_STORE.

Invariants:
    - (key, value) is unique within a store; insert_many skips duplicates
    - association rows are only ever touched for the given version
    - prune_orphaned is store-wide and runs as a single statement; it skips
      rows locked by other transactions instead of waiting on them
    - records are locked FOR KEY SHARE before they are joined to a version
"""

import logging
from dataclasses import dataclass
from typing import Generic, Iterable, TypeVar
from uuid import UUID

from sqlalchemy import delete, exists, insert, select, tuple_
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from objmeta.models.orm.attributes import Metadata, Tag, VersionMetadata, VersionTag
from objmeta.models.orm.objects import Version
from objmeta.repositories.base import BaseRepository

logger = logging.getLogger(__name__)

AttributeT = TypeVar("AttributeT", Tag, Metadata)

Pair = tuple[str, str]

# Insert rounds before giving up on pairs a concurrent prune keeps removing
INSERT_ATTEMPTS = 3


@dataclass(frozen=True)
class AttributeStore:
    """Describes one attribute dictionary and its association table."""

    name: str
    attribute: type[Tag] | type[Metadata]
    association: type[VersionTag] | type[VersionMetadata]
    # One value per key per version (collision detection for metadata)
    single_value_per_key: bool = False


TAG_STORE = AttributeStore(name="tag", attribute=Tag, association=VersionTag)
METADATA_STORE = AttributeStore(
    name="metadata",
    attribute=Metadata,
    association=VersionMetadata,
    single_value_per_key=True,
)


class AttributeRepository(BaseRepository[AttributeT], Generic[AttributeT]):
    """
    Repository for one attribute dictionary.

    Example usage:
        repo = AttributeRepository(db, TAG_STORE)
        records = await repo.create_attributes([("colour", "red")])
        await repo.insert_associations(version_id, [r.id for r in records], actor_id)
    """

    def __init__(self, session: AsyncSession, store: AttributeStore):
        super().__init__(session)
        self.store = store
        self.model = store.attribute  # type: ignore[assignment]
        self.association = store.association

    # =========================================================================
    # Dictionary
    # =========================================================================

    async def find_all(self) -> list[AttributeT]:
        """Return every record in the dictionary."""
        result = await self.session.execute(select(self.model))
        return list(result.scalars().all())

    async def find_existing(self, key: str, value: str) -> AttributeT | None:
        """Return the record for an exact (key, value) pair, if any."""
        result = await self.session.execute(
            select(self.model).where(self.model.key == key, self.model.value == value)
        )
        return result.scalar_one_or_none()

    async def find_pairs(self, pairs: list[Pair], lock: bool = False) -> list[AttributeT]:
        """
        Return the records for the given pairs that exist.

        With `lock`, each returned row is held with FOR KEY SHARE until the
        transaction ends, so a concurrent prune skips it.
        """
        if not pairs:
            return []
        query = select(self.model).where(
            tuple_(self.model.key, self.model.value).in_(pairs)
        )
        if lock:
            query = query.order_by(self.model.id).with_for_update(key_share=True)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def lock_records(self, attribute_ids: list[int]) -> list[AttributeT]:
        """
        Take FOR KEY SHARE locks on records about to be joined.

        Waits for a prune holding the row, so a record deleted meanwhile is
        simply absent from the result.

        Returns:
            The records still present
        """
        if not attribute_ids:
            return []
        result = await self.session.execute(
            select(self.model)
            .where(self.model.id.in_(attribute_ids))
            .order_by(self.model.id)
            .with_for_update(key_share=True)
        )
        return list(result.scalars().all())

    async def insert_many(self, pairs: list[Pair]) -> list[AttributeT]:
        """
        Bulk insert new pairs.

        Pairs that already exist (for example inserted by a concurrent
        transaction since the caller looked) are skipped by the conflict
        clause and read back under a key-share lock. A pair pruned between
        the conflict and the read-back is inserted again.

        Args:
            pairs: Distinct (key, value) tuples

        Returns:
            One record per input pair

        Raises:
            RuntimeError: A pair kept disappearing after INSERT_ATTEMPTS tries
        """
        records: list[AttributeT] = []
        remaining = sorted(pairs)

        for _ in range(INSERT_ATTEMPTS):
            if not remaining:
                break

            stmt = (
                pg_insert(self.model)
                .values([{"key": key, "value": value} for key, value in remaining])
                .on_conflict_do_nothing(index_elements=["key", "value"])
                .returning(self.model)
            )
            result = await self.session.scalars(stmt)
            inserted = list(result.all())
            records.extend(inserted)

            inserted_pairs = {record.pair for record in inserted}
            skipped = [pair for pair in remaining if pair not in inserted_pairs]
            if skipped:
                logger.debug(
                    f"{len(skipped)} {self.store.name} pair(s) already present, reading back"
                )
                records.extend(await self.find_pairs(skipped, lock=True))

            resolved = {record.pair for record in records}
            remaining = [pair for pair in remaining if pair not in resolved]

        if remaining:
            raise RuntimeError(
                f"Could not resolve {len(remaining)} {self.store.name} record(s) "
                f"after {INSERT_ATTEMPTS} attempts"
            )

        order = {pair: i for i, pair in enumerate(pairs)}
        return sorted(records, key=lambda record: order[record.pair])

    async def create_attributes(self, pairs: Iterable[Pair]) -> list[AttributeT]:
        """
        Resolve records for pairs, inserting those not yet in the dictionary.

        The existing lookup is a full scan of the dictionary within the
        current transaction. Matched records are then locked FOR KEY SHARE
        so a concurrent prune cannot delete them before they are joined;
        any that were deleted meanwhile are inserted again. Duplicate input
        pairs are collapsed.

        Args:
            pairs: (key, value) tuples

        Returns:
            One record per distinct input pair, in input order
        """
        wanted = list(dict.fromkeys(pairs))
        if not wanted:
            return []

        existing = {record.pair: record for record in await self.find_all()}
        matched_ids = [existing[pair].id for pair in wanted if pair in existing]
        resolved = {record.pair: record for record in await self.lock_records(matched_ids)}

        new_pairs = [pair for pair in wanted if pair not in resolved]
        if new_pairs:
            inserted = await self.insert_many(new_pairs)
            logger.debug(f"Resolved {len(inserted)} new {self.store.name} record(s)")
            resolved.update((record.pair, record) for record in inserted)

        return [resolved[pair] for pair in wanted]

    async def prune_orphaned(self) -> int:
        """
        Delete every record no version references.

        Candidates are first locked FOR UPDATE SKIP LOCKED: a record another
        transaction holds (because it is joining it, or pruning it) is left
        alone, so pruning never waits. The delete then re-checks references
        in a fresh snapshot, taken once the locks are held, so a join
        committed during the candidate scan is still seen.

        Returns:
            Number of records deleted
        """
        referenced = exists().where(self.association.attribute_id == self.model.id)
        result = await self.session.execute(
            select(self.model.id)
            .where(~referenced)
            .order_by(self.model.id)
            .with_for_update(skip_locked=True)
        )
        candidates = list(result.scalars().all())
        if not candidates:
            return 0

        stmt = (
            delete(self.model)
            .where(self.model.id.in_(candidates), ~referenced)
            .returning(self.model.id)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        pruned = len(result.scalars().all())
        if pruned:
            logger.debug(f"Pruned {pruned} orphaned {self.store.name} record(s)")
        return pruned

    # =========================================================================
    # Associations
    # =========================================================================

    async def lock_version(self, version_id: UUID) -> bool:
        """
        Take a row lock on the version for the rest of the transaction.

        Serialises concurrent read-modify-write cycles on the same version.

        Returns:
            False if the version does not exist
        """
        result = await self.session.execute(
            select(Version.id).where(Version.id == version_id).with_for_update()
        )
        return result.scalar_one_or_none() is not None

    async def list_for_version(self, version_id: UUID) -> list[AttributeT]:
        """Return the records currently associated with a version."""
        query = (
            select(self.model)
            .join(self.association, self.association.attribute_id == self.model.id)
            .where(self.association.version_id == version_id)
            .order_by(self.model.key, self.model.value)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def associated_ids(self, version_id: UUID) -> set[int]:
        """Return the ids of records joined to a version."""
        result = await self.session.execute(
            select(self.association.attribute_id).where(
                self.association.version_id == version_id
            )
        )
        return set(result.scalars().all())

    async def insert_associations(
        self,
        version_id: UUID,
        attribute_ids: list[int],
        created_by: UUID,
    ) -> int:
        """Join records to a version."""
        if not attribute_ids:
            return 0

        await self.session.execute(
            insert(self.association),
            [
                {
                    "version_id": version_id,
                    "attribute_id": attribute_id,
                    "created_by": created_by,
                }
                for attribute_id in attribute_ids
            ],
        )
        return len(attribute_ids)

    async def delete_associations(self, version_id: UUID, attribute_ids: list[int]) -> int:
        """Remove the given records from a version only."""
        if not attribute_ids:
            return 0

        stmt = (
            delete(self.association)
            .where(
                self.association.version_id == version_id,
                self.association.attribute_id.in_(attribute_ids),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def delete_associations_by_key(self, version_id: UUID, key: str) -> int:
        """Remove every record carrying `key` from a version, whatever its value."""
        keyed = select(self.model.id).where(self.model.key == key)
        stmt = (
            delete(self.association)
            .where(
                self.association.version_id == version_id,
                self.association.attribute_id.in_(keyed),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0
