"""
Integration tests for attribute reconciliation against PostgreSQL.

Most tests join the test's session, which is rolled back afterwards. The
concurrency and owned-transaction tests commit through separate sessions;
the schema is dropped when the engine fixture tears down.
"""

import asyncio
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from objmeta.core.database import close_db, reset_db_state
from objmeta.core.exceptions import AttributeConflictError
from objmeta.models.contracts.attributes import AttributeMatcher
from objmeta.models.orm.attributes import Metadata, Tag, VersionTag
from objmeta.repositories.attributes import TAG_STORE, AttributeRepository
from objmeta.repositories.objects import ObjectRepository, VersionRepository
from objmeta.services.attributes import metadata_service, tag_service

pytestmark = pytest.mark.integration


async def make_version(db, path: str | None = None):
    obj = await ObjectRepository(db).create_object(
        path=path or f"it/{uuid4()}", public=False, created_by=uuid4()
    )
    return await VersionRepository(db).create_version(object_id=obj.id, created_by=uuid4())


async def count(db, model) -> int:
    return await db.scalar(select(func.count()).select_from(model))


class TestTagReconciliation:
    async def test_replace_is_idempotent(self, db_session):
        version = await make_version(db_session)
        wanted = [("colour", "red"), ("size", "L")]

        first = await tag_service.replace_attribute_set(version.id, wanted, session=db_session)
        second = await tag_service.replace_attribute_set(version.id, wanted, session=db_session)

        assert [t.pair for t in first] == [t.pair for t in second]
        assert await count(db_session, Tag) == 2
        assert await count(db_session, VersionTag) == 2

    async def test_pairs_are_shared_between_versions(self, db_session):
        v1 = await make_version(db_session)
        v2 = await make_version(db_session)

        await tag_service.replace_attribute_set(v1.id, [("colour", "red")], session=db_session)
        await tag_service.replace_attribute_set(v2.id, [("colour", "red")], session=db_session)

        assert await count(db_session, Tag) == 1
        assert await count(db_session, VersionTag) == 2

    async def test_orphans_are_pruned_but_shared_records_kept(self, db_session):
        v1 = await make_version(db_session)
        v2 = await make_version(db_session)
        await tag_service.replace_attribute_set(
            v1.id, [("colour", "red"), ("size", "L")], session=db_session
        )
        await tag_service.replace_attribute_set(v2.id, [("colour", "red")], session=db_session)

        await tag_service.replace_attribute_set(v1.id, [], session=db_session)

        remaining = await AttributeRepository(db_session, TAG_STORE).find_all()
        assert [t.pair for t in remaining] == [("colour", "red")]
        assert [t.pair for t in await tag_service.list_attributes(v2.id, session=db_session)] == [
            ("colour", "red")
        ]

    async def test_dissociate_by_key(self, db_session):
        version = await make_version(db_session)
        await tag_service.replace_attribute_set(
            version.id,
            [("colour", "red"), ("colour", "blue"), ("size", "L")],
            session=db_session,
        )

        removed = await tag_service.dissociate_attributes(
            version.id, [AttributeMatcher(key="colour")], session=db_session
        )

        assert removed == 2
        assert await count(db_session, Tag) == 1

    async def test_deleting_version_cascades_associations(self, db_session):
        version = await make_version(db_session)
        await tag_service.replace_attribute_set(version.id, [("colour", "red")], session=db_session)

        await VersionRepository(db_session).delete(version)
        pruned = await tag_service.prune_orphaned(session=db_session)

        assert pruned == 1
        assert await count(db_session, VersionTag) == 0


class TestMetadataReconciliation:
    async def test_conflicting_values_rejected(self, db_session):
        version = await make_version(db_session)

        with pytest.raises(AttributeConflictError):
            await metadata_service.replace_attribute_set(
                version.id, [("owner", "alice"), ("owner", "bob")], session=db_session
            )

        assert await count(db_session, Metadata) == 0

    async def test_associate_overwrites_value(self, db_session):
        version = await make_version(db_session)
        await metadata_service.replace_attribute_set(
            version.id, [("owner", "alice")], session=db_session
        )

        await metadata_service.associate_attributes(
            version.id, [("owner", "bob")], session=db_session
        )

        current = await metadata_service.list_attributes(version.id, session=db_session)
        assert [m.pair for m in current] == [("owner", "bob")]
        assert await count(db_session, Metadata) == 1


# ==================== CONCURRENT TRANSACTIONS ====================


@pytest.fixture
def session_factory(db_engine):
    """Factory for independent sessions that commit for real."""
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


async def committed_version(session_factory, tags: list[tuple[str, str]] | None = None):
    async with session_factory() as db:
        version = await make_version(db)
        if tags:
            await tag_service.replace_attribute_set(version.id, tags, session=db)
        await db.commit()
    return version


async def committed_pairs(session_factory, version_id) -> list[tuple[str, str]]:
    async with session_factory() as db:
        return [t.pair for t in await tag_service.list_attributes(version_id, session=db)]


class TestConcurrentReconciliation:
    async def test_prune_skips_record_being_joined(self, session_factory):
        version_a = await committed_version(session_factory)
        version_b = await committed_version(session_factory, [("k", "v")])

        async with session_factory() as first, session_factory() as second:
            await tag_service.associate_attributes(version_a.id, [("k", "v")], session=first)

            removed = await asyncio.wait_for(
                tag_service.dissociate_attributes(
                    version_b.id, [AttributeMatcher(key="k", value="v")], session=second
                ),
                timeout=5,
            )
            await second.commit()
            await first.commit()

        assert removed == 1
        assert await committed_pairs(session_factory, version_a.id) == [("k", "v")]
        assert await committed_pairs(session_factory, version_b.id) == []

    async def test_join_waits_for_prune_and_recreates_record(self, session_factory):
        version_a = await committed_version(session_factory)
        version_b = await committed_version(session_factory, [("k", "v")])

        async with session_factory() as first, session_factory() as second:
            await tag_service.replace_attribute_set(version_b.id, [], session=second)

            joining = asyncio.create_task(
                tag_service.associate_attributes(version_a.id, [("k", "v")], session=first)
            )
            await asyncio.sleep(0.5)
            assert not joining.done()

            await second.commit()
            records = await asyncio.wait_for(joining, timeout=5)
            await first.commit()

        assert [r.pair for r in records] == [("k", "v")]
        assert await committed_pairs(session_factory, version_a.id) == [("k", "v")]

    async def test_shared_record_survives_clearing_other_version(self, session_factory):
        version_a = await committed_version(session_factory)
        version_b = await committed_version(session_factory, [("x", "1")])

        async with session_factory() as first, session_factory() as second:
            await tag_service.associate_attributes(version_a.id, [("x", "1")], session=first)

            await asyncio.wait_for(
                tag_service.replace_attribute_set(version_b.id, [], session=second),
                timeout=5,
            )
            await tag_service.associate_attributes(version_a.id, [("y", "2")], session=first)

            await second.commit()
            await first.commit()

        assert await committed_pairs(session_factory, version_a.id) == [("x", "1"), ("y", "2")]
        assert await committed_pairs(session_factory, version_b.id) == []


# ==================== OWNED TRANSACTIONS ====================


@pytest.fixture
async def owned_db(db_engine):
    """Point the application's own engine at the test database."""
    reset_db_state()
    yield
    await close_db()


class TestOwnedTransaction:
    async def test_failure_leaves_previous_set(self, session_factory, owned_db):
        version = await committed_version(session_factory, [("a", "1")])

        with patch.object(
            AttributeRepository,
            "insert_associations",
            AsyncMock(side_effect=RuntimeError("connection lost")),
        ):
            with pytest.raises(RuntimeError):
                await tag_service.replace_attribute_set(version.id, [("b", "2")])

        assert await committed_pairs(session_factory, version.id) == [("a", "1")]
        async with session_factory() as db:
            remaining = await AttributeRepository(db, TAG_STORE).find_all()
        assert [t.pair for t in remaining] == [("a", "1")]

    async def test_success_commits(self, session_factory, owned_db):
        version = await committed_version(session_factory, [("a", "1")])

        await tag_service.replace_attribute_set(version.id, [("b", "2")])

        assert await committed_pairs(session_factory, version.id) == [("b", "2")]
