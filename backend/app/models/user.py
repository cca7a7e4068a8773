"""User model - credential store record.

One row per registered account. Purpose tokens are never stored; they are
re-derived from ``id`` + ``security_stamp``.
"""

import secrets
import uuid

from sqlalchemy import Boolean, String, text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin


def new_user_id() -> str:
    """Generate an opaque user identifier."""
    return str(uuid.uuid4())


def new_security_stamp() -> str:
    """Generate a fresh security stamp."""
    return secrets.token_hex(16)


class User(Base, TimestampMixin):
    """User account for authentication.

    Attributes:
        id: Opaque UUID string primary key. Immutable.
        email: Unique email address, stored lowercase.
        full_name: Display name given at registration.
        password_hash: bcrypt hash.
        email_confirmed: Whether the confirmation link has been used.
        security_stamp: Rotated on every password change. Purpose tokens
            issued under an older stamp no longer verify.
        created_at: Account creation timestamp (from TimestampMixin).
        updated_at: Last modification timestamp (from TimestampMixin).
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=new_user_id,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    full_name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    email_confirmed: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("0"),
        default=False,
    )
    security_stamp: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        default=new_security_stamp,
    )
