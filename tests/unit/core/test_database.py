"""
Unit tests for unit-of-work ownership.

A supplied session is joined and left alone; without one, a session is
opened, committed on success and rolled back on failure.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from objmeta.core.database import get_db_context, unit_of_work


def mock_session_factory(session):
    """Session factory whose sessions are async context managers yielding `session`."""
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=session)
    context.__aexit__ = AsyncMock(return_value=False)
    return MagicMock(return_value=context)


class TestUnitOfWork:
    async def test_joins_supplied_session(self, mock_session):
        async with unit_of_work(mock_session) as db:
            assert db is mock_session

        mock_session.commit.assert_not_awaited()
        mock_session.rollback.assert_not_awaited()

    async def test_failure_in_joined_session_propagates_untouched(self, mock_session):
        with pytest.raises(RuntimeError):
            async with unit_of_work(mock_session):
                raise RuntimeError("boom")

        mock_session.commit.assert_not_awaited()
        mock_session.rollback.assert_not_awaited()

    async def test_owned_session_commits(self, mock_session):
        with patch(
            "objmeta.core.database.get_session_factory",
            return_value=mock_session_factory(mock_session),
        ):
            async with unit_of_work() as db:
                assert db is mock_session

        mock_session.commit.assert_awaited_once()
        mock_session.rollback.assert_not_awaited()

    async def test_owned_session_rolls_back_and_reraises(self, mock_session):
        with patch(
            "objmeta.core.database.get_session_factory",
            return_value=mock_session_factory(mock_session),
        ):
            with pytest.raises(ValueError):
                async with unit_of_work():
                    raise ValueError("boom")

        mock_session.rollback.assert_awaited_once()
        mock_session.commit.assert_not_awaited()


class TestGetDbContext:
    async def test_commit_failure_rolls_back(self, mock_session):
        mock_session.commit = AsyncMock(side_effect=RuntimeError("commit failed"))

        with patch(
            "objmeta.core.database.get_session_factory",
            return_value=mock_session_factory(mock_session),
        ):
            with pytest.raises(RuntimeError):
                async with get_db_context():
                    pass

        mock_session.rollback.assert_awaited_once()
