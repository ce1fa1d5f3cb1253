"""
Unit tests for ObjectService.

Repositories are patched; the attribute services are mocks so the tests
can check that every step joins the caller's session.
"""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from objmeta.core.constants import SYSTEM_USER_UUID
from objmeta.core.exceptions import ObjectPathConflictError
from objmeta.models.contracts.attributes import AttributePair
from objmeta.models.contracts.objects import ObjectCreate, VersionCreate
from objmeta.models.enums import PermissionCode
from objmeta.services.objects import ObjectService


@pytest.fixture
def attribute_services():
    tags = MagicMock()
    tags.replace_attribute_set = AsyncMock(return_value=[])
    tags.prune_orphaned = AsyncMock(return_value=1)
    metadata = MagicMock()
    metadata.replace_attribute_set = AsyncMock(return_value=[])
    metadata.prune_orphaned = AsyncMock(return_value=0)
    return tags, metadata


@pytest.fixture
def service(attribute_services):
    tags, metadata = attribute_services
    return ObjectService(tags=tags, metadata=metadata)


@pytest.fixture
def repos():
    with (
        patch("objmeta.services.objects.ObjectRepository") as object_repo,
        patch("objmeta.services.objects.VersionRepository") as version_repo,
        patch("objmeta.services.objects.PermissionRepository") as permission_repo,
    ):
        obj = MagicMock(id=uuid4())
        version = MagicMock(id=uuid4())
        object_repo.return_value.get_by_path = AsyncMock(return_value=None)
        object_repo.return_value.get_by_id = AsyncMock(return_value=obj)
        object_repo.return_value.create_object = AsyncMock(return_value=obj)
        version_repo.return_value.create_version = AsyncMock(return_value=version)
        version_repo.return_value.get_for_object = AsyncMock(return_value=version)
        version_repo.return_value.delete = AsyncMock()
        permission_repo.return_value.grant = AsyncMock(return_value=[])
        yield MagicMock(
            object=object_repo.return_value,
            version=version_repo.return_value,
            permission=permission_repo.return_value,
            obj=obj,
            version_record=version,
        )


class TestCreateObject:
    async def test_creates_records_attributes_and_grants(
        self, service, attribute_services, repos, mock_session
    ):
        tags, metadata = attribute_services
        actor = uuid4()
        data = ObjectCreate(
            path="reports/q1.pdf",
            tags=[AttributePair(key="colour", value="red")],
            metadata=[AttributePair(key="owner", value="ops")],
        )

        obj, version = await service.create_object(data, actor_id=actor, session=mock_session)

        assert obj is repos.obj
        assert version is repos.version_record
        metadata.replace_attribute_set.assert_awaited_once_with(
            version.id, data.metadata, actor_id=actor, session=mock_session
        )
        tags.replace_attribute_set.assert_awaited_once_with(
            version.id, data.tags, actor_id=actor, session=mock_session
        )
        repos.permission.grant.assert_awaited_once_with(
            obj.id, actor, list(PermissionCode), actor
        )
        mock_session.commit.assert_not_awaited()

    async def test_system_user_receives_no_grants(self, service, repos, mock_session):
        await service.create_object(
            ObjectCreate(path="a"), actor_id=SYSTEM_USER_UUID, session=mock_session
        )

        repos.permission.grant.assert_not_awaited()

    async def test_taken_path_raises(self, service, repos, mock_session):
        repos.object.get_by_path = AsyncMock(return_value=MagicMock())

        with pytest.raises(ObjectPathConflictError):
            await service.create_object(ObjectCreate(path="a"), session=mock_session)

        repos.object.create_object.assert_not_awaited()


class TestCreateVersion:
    async def test_creates_version_with_attributes(
        self, service, attribute_services, repos, mock_session
    ):
        tags, metadata = attribute_services
        object_id = uuid4()

        version = await service.create_version(
            object_id, VersionCreate(mime_type="text/plain"), session=mock_session
        )

        assert version is repos.version_record
        repos.version.create_version.assert_awaited_once()
        assert tags.replace_attribute_set.await_count == 1
        assert metadata.replace_attribute_set.await_count == 1

    async def test_unknown_object_raises(self, service, repos, mock_session):
        repos.object.get_by_id = AsyncMock(return_value=None)

        with pytest.raises(LookupError):
            await service.create_version(uuid4(), VersionCreate(), session=mock_session)


class TestDeleteVersion:
    async def test_deletes_and_prunes_both_stores(
        self, service, attribute_services, repos, mock_session
    ):
        tags, metadata = attribute_services

        deleted = await service.delete_version(uuid4(), uuid4(), session=mock_session)

        assert deleted is True
        repos.version.delete.assert_awaited_once_with(repos.version_record)
        tags.prune_orphaned.assert_awaited_once_with(session=mock_session)
        metadata.prune_orphaned.assert_awaited_once_with(session=mock_session)

    async def test_foreign_version_is_not_deleted(
        self, service, attribute_services, repos, mock_session
    ):
        tags, _ = attribute_services
        repos.version.get_for_object = AsyncMock(return_value=None)

        assert await service.delete_version(uuid4(), uuid4(), session=mock_session) is False
        repos.version.delete.assert_not_awaited()
        tags.prune_orphaned.assert_not_awaited()
