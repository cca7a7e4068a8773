"""Repository for User CRUD operations.

Provides database access for the users table.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User, new_security_stamp

# Fields that may be updated via UserRepository.update().
# Security: Never add 'id', 'email', 'created_at', or 'updated_at'.
# - id: primary key, immutable
# - email: unique identity, requires dedicated flow with re-verification
# - created_at/updated_at: server-managed timestamps
# Security: security_stamp is excluded; it only changes together with the
# password hash in update_password().
_UPDATABLE_FIELDS: frozenset[str] = frozenset(
    {
        "full_name",
        "email_confirmed",
    }
)


class UserRepository:
    """Stateless repository for User table operations.

    All methods are static with no instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: str) -> User | None:
        """Fetch a user by primary key.

        Args:
            db: Async database session.
            user_id: Opaque user id.

        Returns:
            User if found, None otherwise.
        """
        return await db.get(User, user_id)

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> User | None:
        """Fetch a user by email address (case-insensitive).

        Args:
            db: Async database session.
            email: Email address to look up.

        Returns:
            User if found, None otherwise.
        """
        stmt = select(User).where(User.email == email.strip().lower())
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        email: str,
        password_hash: str,
        full_name: str | None = None,
    ) -> User:
        """Create a new, unconfirmed user.

        Email is normalized to lowercase before storage.

        Args:
            db: Async database session.
            email: User email address.
            password_hash: bcrypt hash.
            full_name: Display name.

        Returns:
            Created User with database-generated fields populated.

        Raises:
            sqlalchemy.exc.IntegrityError: If email already exists.
        """
        user = User(
            email=email.strip().lower(),
            full_name=full_name,
            password_hash=password_hash,
            email_confirmed=False,
        )
        db.add(user)
        await db.flush()
        await db.refresh(user)
        return user

    @staticmethod
    async def update(
        db: AsyncSession,
        user_id: str,
        **kwargs: str | bool | None,
    ) -> User | None:
        """Update user fields.

        Only fields in _UPDATABLE_FIELDS are allowed. Unknown field names
        raise ValueError.

        Args:
            db: Async database session.
            user_id: Id of the user to update.
            **kwargs: Field names and values to update.

        Returns:
            Updated User if found, None if user does not exist.

        Raises:
            ValueError: If an unknown field name is passed.
        """
        unknown = set(kwargs) - _UPDATABLE_FIELDS
        if unknown:
            msg = f"Unknown fields: {', '.join(sorted(unknown))}"
            raise ValueError(msg)

        user = await db.get(User, user_id)
        if user is None:
            return None

        for field, value in kwargs.items():
            setattr(user, field, value)

        await db.flush()
        await db.refresh(user)
        return user

    @staticmethod
    async def update_password(
        db: AsyncSession, user_id: str, *, password_hash: str
    ) -> User | None:
        """Store a new password hash and rotate the security stamp.

        Rotating the stamp invalidates every purpose token issued before
        this call.

        Args:
            db: Async database session.
            user_id: Id of the user.
            password_hash: New bcrypt hash.

        Returns:
            Updated User if found, None if user does not exist.
        """
        user = await db.get(User, user_id)
        if user is None:
            return None
        user.password_hash = password_hash
        user.security_stamp = new_security_stamp()
        await db.flush()
        await db.refresh(user)
        return user

    @staticmethod
    async def confirm_email(db: AsyncSession, user_id: str) -> User | None:
        """Mark the user's email as confirmed.

        Args:
            db: Async database session.
            user_id: Id of the user.

        Returns:
            Updated User if found, None if user does not exist.
        """
        return await UserRepository.update(db, user_id, email_confirmed=True)
