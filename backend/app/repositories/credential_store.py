"""SQL-backed credential store.

Adapts the stateless UserRepository to the per-request CredentialStore
interface consumed by AuthService. Each write commits on its own so
account creation, password change and email confirmation are atomic
per row.
"""

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User
from app.repositories.user_repository import UserRepository


class SqlCredentialStore:
    """CredentialStore bound to one database session.

    Attributes:
        db: Async database session owned by the request.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def find_by_email(self, email: str) -> User | None:
        return await UserRepository.get_by_email(self.db, email)

    async def find_by_id(self, user_id: str) -> User | None:
        return await UserRepository.get_by_id(self.db, user_id)

    async def create(
        self, *, email: str, password_hash: str, full_name: str | None
    ) -> User | None:
        """Insert a new account.

        The unique constraint on email decides concurrent registrations:
        exactly one insert wins, every other caller gets None.

        Returns:
            Created User, or None if the email is already registered.
        """
        try:
            user = await UserRepository.create(
                self.db,
                email=email,
                password_hash=password_hash,
                full_name=full_name,
            )
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            return None
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        return user

    async def update_password(self, user_id: str, password_hash: str) -> User | None:
        """Store a new hash; also rotates the user's security stamp."""
        try:
            user = await UserRepository.update_password(
                self.db, user_id, password_hash=password_hash
            )
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        return user

    async def confirm_email(self, user_id: str) -> User | None:
        try:
            user = await UserRepository.confirm_email(self.db, user_id)
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        return user
