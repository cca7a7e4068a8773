"""Tests for SqlCredentialStore.

The store commits each write and turns unique-constraint violations on
create into None.
"""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.repositories.credential_store import SqlCredentialStore
from app.repositories.user_repository import UserRepository

_HASH = "$2b$04$abcdefghijklmnopqrstuuE6i8Yk1mS0zF2b3c4d5e6f7g8h9i0jK"  # nosec B105


class TestCreate:
    """Tests for SqlCredentialStore.create()."""

    async def test_creates_and_commits(self, db_session: AsyncSession, db_engine):
        """A created account is visible to other sessions."""
        store = SqlCredentialStore(db_session)
        user = await store.create(
            email="new@example.com", password_hash=_HASH, full_name="Faiz"
        )
        assert user is not None

        other = async_sessionmaker(db_engine, expire_on_commit=False)
        async with other() as session:
            found = await UserRepository.get_by_email(session, "new@example.com")
        assert found is not None
        assert found.id == user.id

    async def test_duplicate_returns_none(self, db_session: AsyncSession, test_user):
        """A second account for the same email is refused without raising."""
        store = SqlCredentialStore(db_session)
        result = await store.create(
            email=test_user.email, password_hash=_HASH, full_name=None
        )
        assert result is None

    async def test_session_usable_after_duplicate(
        self, db_session: AsyncSession, test_user
    ):
        """The rollback leaves the session ready for the next call."""
        store = SqlCredentialStore(db_session)
        await store.create(email=test_user.email, password_hash=_HASH, full_name=None)
        assert await store.find_by_email("poet@example.com") is not None

    async def test_other_database_errors_propagate(self, db_session: AsyncSession):
        """Only uniqueness violations are converted; other errors raise."""
        store = SqlCredentialStore(db_session)
        with (
            patch.object(
                UserRepository,
                "create",
                AsyncMock(side_effect=OperationalError("INSERT", {}, Exception())),
            ),
            pytest.raises(OperationalError),
        ):
            await store.create(email="x@example.com", password_hash=_HASH, full_name=None)

    async def test_integrity_error_from_repository(self, db_session: AsyncSession):
        """An IntegrityError raised mid-insert is reported as None."""
        store = SqlCredentialStore(db_session)
        with patch.object(
            UserRepository,
            "create",
            AsyncMock(side_effect=IntegrityError("INSERT", {}, Exception())),
        ):
            result = await store.create(
                email="x@example.com", password_hash=_HASH, full_name=None
            )
        assert result is None


class TestLookups:
    """Tests for find_by_email() and find_by_id()."""

    async def test_find_by_email(self, db_session: AsyncSession, test_user):
        store = SqlCredentialStore(db_session)
        user = await store.find_by_email("POET@example.com")
        assert user is not None
        assert user.id == test_user.id

    async def test_find_by_id(self, db_session: AsyncSession, test_user):
        store = SqlCredentialStore(db_session)
        user = await store.find_by_id(test_user.id)
        assert user is not None
        assert user.email == test_user.email

    async def test_missing(self, db_session: AsyncSession):
        store = SqlCredentialStore(db_session)
        assert await store.find_by_email("nobody@example.com") is None
        assert await store.find_by_id("missing") is None


class TestWrites:
    """Tests for update_password() and confirm_email()."""

    async def test_update_password_rotates_stamp(
        self, db_session: AsyncSession, test_user
    ):
        """The new hash is stored and the stamp changes."""
        store = SqlCredentialStore(db_session)
        old_stamp = test_user.security_stamp
        user = await store.update_password(test_user.id, _HASH)
        assert user.password_hash == _HASH
        assert user.security_stamp != old_stamp

    async def test_confirm_email(self, db_session: AsyncSession, test_user):
        """The confirmation flag is stored."""
        store = SqlCredentialStore(db_session)
        user = await store.confirm_email(test_user.id)
        assert user.email_confirmed is True

    async def test_update_password_missing_user(self, db_session: AsyncSession):
        """Updating an unknown id returns None."""
        store = SqlCredentialStore(db_session)
        assert await store.update_password("missing", _HASH) is None
