"""Integration tests for PermissionRepository against PostgreSQL."""

from uuid import uuid4

import pytest

from objmeta.models.enums import PermissionCode
from objmeta.repositories.objects import ObjectRepository
from objmeta.repositories.permissions import PermissionRepository

pytestmark = pytest.mark.integration


@pytest.fixture
async def stored_object(db_session):
    return await ObjectRepository(db_session).create_object(
        path=f"it/{uuid4()}", public=False, created_by=uuid4()
    )


class TestPermissionStore:
    async def test_grant_skips_existing(self, db_session, stored_object):
        repo = PermissionRepository(db_session)
        user, actor = uuid4(), uuid4()

        first = await repo.grant(stored_object.id, user, [PermissionCode.READ], actor)
        second = await repo.grant(
            stored_object.id, user, [PermissionCode.READ, PermissionCode.UPDATE], actor
        )

        assert [g.permission_code for g in first] == [PermissionCode.READ]
        assert [g.permission_code for g in second] == [PermissionCode.UPDATE]
        assert await repo.codes_for(stored_object.id, user) == {
            PermissionCode.READ,
            PermissionCode.UPDATE,
        }

    async def test_search_filters_are_conjunctive(self, db_session, stored_object):
        repo = PermissionRepository(db_session)
        alice, bob = uuid4(), uuid4()
        await repo.grant(stored_object.id, alice, [PermissionCode.READ, PermissionCode.MANAGE], alice)
        await repo.grant(stored_object.id, bob, [PermissionCode.READ], alice)

        readers = await repo.search(
            object_ids=[stored_object.id], permission_codes=[PermissionCode.READ]
        )
        managers = await repo.search(
            user_ids=[bob], permission_codes=[PermissionCode.MANAGE]
        )

        assert {g.user_id for g in readers} == {alice, bob}
        assert managers == []

    async def test_revoke(self, db_session, stored_object):
        repo = PermissionRepository(db_session)
        user = uuid4()
        await repo.grant(stored_object.id, user, list(PermissionCode), user)

        revoked = await repo.revoke(stored_object.id, codes=[PermissionCode.DELETE])

        assert revoked == 1
        assert PermissionCode.DELETE not in await repo.codes_for(stored_object.id, user)
