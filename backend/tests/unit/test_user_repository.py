"""Tests for UserRepository.

Covers lookups, creation, email uniqueness, the update whitelist,
password changes and email confirmation.
"""

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.repositories.user_repository import UserRepository

_MISSING_ID = "99999999-9999-9999-9999-999999999999"
_TEST_EMAIL = "poet@example.com"
_HASH = "$2b$04$abcdefghijklmnopqrstuuE6i8Yk1mS0zF2b3c4d5e6f7g8h9i0jK"  # nosec B105


class TestGetById:
    """Test UserRepository.get_by_id()."""

    async def test_returns_user_when_found(self, db_session: AsyncSession, test_user):
        """Existing user is returned by ID."""
        user = await UserRepository.get_by_id(db_session, test_user.id)
        assert user is not None
        assert user.id == test_user.id
        assert user.email == test_user.email

    async def test_returns_none_when_not_found(self, db_session: AsyncSession):
        """Non-existent ID returns None."""
        user = await UserRepository.get_by_id(db_session, _MISSING_ID)
        assert user is None


class TestGetByEmail:
    """Test UserRepository.get_by_email()."""

    async def test_returns_user_when_found(self, db_session: AsyncSession, test_user):
        """Existing user is returned by email."""
        user = await UserRepository.get_by_email(db_session, _TEST_EMAIL)
        assert user is not None
        assert user.id == test_user.id

    async def test_returns_none_when_not_found(self, db_session: AsyncSession):
        """Non-existent email returns None."""
        user = await UserRepository.get_by_email(db_session, "nobody@example.com")
        assert user is None

    async def test_email_lookup_is_case_insensitive(
        self, db_session: AsyncSession, test_user
    ):
        """Email lookup ignores case and surrounding whitespace."""
        user = await UserRepository.get_by_email(db_session, "  POET@Example.COM ")
        assert user is not None
        assert user.id == test_user.id


class TestCreate:
    """Test UserRepository.create()."""

    async def test_creates_unconfirmed_user(self, db_session: AsyncSession):
        """New users get an id, a security stamp and email_confirmed=False."""
        user = await UserRepository.create(
            db_session, email="new@example.com", password_hash=_HASH, full_name="Faiz"
        )
        assert user.id
        assert user.email == "new@example.com"
        assert user.full_name == "Faiz"
        assert user.password_hash == _HASH
        assert user.email_confirmed is False
        assert len(user.security_stamp) == 32
        assert user.created_at is not None

    async def test_normalizes_email(self, db_session: AsyncSession):
        """Email is stored lowercase and trimmed."""
        user = await UserRepository.create(
            db_session, email=" New@Example.COM ", password_hash=_HASH
        )
        assert user.email == "new@example.com"

    async def test_ids_and_stamps_are_unique(self, db_session: AsyncSession):
        """Each user gets its own id and stamp."""
        a = await UserRepository.create(
            db_session, email="a@example.com", password_hash=_HASH
        )
        b = await UserRepository.create(
            db_session, email="b@example.com", password_hash=_HASH
        )
        assert a.id != b.id
        assert a.security_stamp != b.security_stamp

    async def test_duplicate_email_raises(self, db_session: AsyncSession, test_user):
        """The unique constraint rejects a second account for one email."""
        with pytest.raises(IntegrityError):
            await UserRepository.create(
                db_session, email=test_user.email.upper(), password_hash=_HASH
            )


class TestUpdate:
    """Test UserRepository.update()."""

    async def test_updates_whitelisted_field(self, db_session: AsyncSession, test_user):
        """Allowed fields are written."""
        user = await UserRepository.update(
            db_session, test_user.id, full_name="Asadullah Khan"
        )
        assert user is not None
        assert user.full_name == "Asadullah Khan"

    async def test_rejects_unknown_field(self, db_session: AsyncSession, test_user):
        """Fields outside the whitelist raise ValueError."""
        with pytest.raises(ValueError, match="security_stamp"):
            await UserRepository.update(
                db_session, test_user.id, security_stamp="forged"
            )

    async def test_rejects_password_hash(self, db_session: AsyncSession, test_user):
        """password_hash only changes through update_password()."""
        with pytest.raises(ValueError, match="password_hash"):
            await UserRepository.update(db_session, test_user.id, password_hash=_HASH)

    async def test_returns_none_when_not_found(self, db_session: AsyncSession):
        """Missing user returns None."""
        assert await UserRepository.update(db_session, _MISSING_ID, full_name="x") is None


class TestUpdatePassword:
    """Test UserRepository.update_password()."""

    async def test_replaces_hash_and_rotates_stamp(
        self, db_session: AsyncSession, test_user
    ):
        """A password change always produces a new security stamp."""
        old_stamp = test_user.security_stamp
        user = await UserRepository.update_password(
            db_session, test_user.id, password_hash=_HASH
        )
        assert user is not None
        assert user.password_hash == _HASH
        assert user.security_stamp != old_stamp

    async def test_returns_none_when_not_found(self, db_session: AsyncSession):
        """Missing user returns None."""
        result = await UserRepository.update_password(
            db_session, _MISSING_ID, password_hash=_HASH
        )
        assert result is None


class TestConfirmEmail:
    """Test UserRepository.confirm_email()."""

    async def test_sets_flag(self, db_session: AsyncSession, test_user):
        """The confirmation flag is set."""
        user = await UserRepository.confirm_email(db_session, test_user.id)
        assert user is not None
        assert user.email_confirmed is True

    async def test_keeps_stamp(self, db_session: AsyncSession, test_user):
        """Confirming an email does not invalidate reset links."""
        old_stamp = test_user.security_stamp
        user = await UserRepository.confirm_email(db_session, test_user.id)
        assert user.security_stamp == old_stamp

    async def test_returns_none_when_not_found(self, db_session: AsyncSession):
        """Missing user returns None."""
        assert await UserRepository.confirm_email(db_session, _MISSING_ID) is None
