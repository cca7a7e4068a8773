"""SQLAlchemy ORM models for the SheroShayari auth API.

All models are exported from this module for convenient imports:
    from app.models import User

Models are organized by domain:
- base.py: Base, TimestampMixin
- user.py: User (credential store)
"""

from app.models.base import Base, TimestampMixin
from app.models.user import User

__all__ = [
    "Base",
    "TimestampMixin",
    "User",
]
