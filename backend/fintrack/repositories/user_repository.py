"""Repository for User CRUD operations.

Provides database access for the users table. No retries, no caching:
store errors propagate to the caller.
"""

import uuid
from collections.abc import Iterable
from datetime import date, datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fintrack.models.user import User

# Fields that may be updated via UserRepository.update().
# Security: Never add 'id', 'role', 'status', 'created_at', or 'updated_at'.
# - id: primary key, immutable
# - role/status: privilege and admission gates, excluded to prevent
#   mass-assignment through profile or session patches
# - created_at/updated_at: server-managed timestamps
_UPDATABLE_FIELDS: frozenset[str] = frozenset(
    {
        "name",
        "email",
        "image",
        "password_hash",
        "email_verified",
        "language",
        "country",
        "phone",
        "date_of_birth",
        "last_login",
        "settings",
    }
)

# Columns that may be requested through get_fields().
_READABLE_FIELDS: frozenset[str] = frozenset(
    {
        "id",
        "email",
        "name",
        "image",
        "password_hash",
        "role",
        "status",
        "email_verified",
        "language",
        "country",
        "phone",
        "date_of_birth",
        "last_login",
        "settings",
        "created_at",
        "updated_at",
    }
)


class UserRepository:
    """Stateless repository for User table operations.

    All methods are static; no instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: uuid.UUID) -> User | None:
        """Fetch a user by primary key.

        Args:
            db: Async database session.
            user_id: UUID primary key.

        Returns:
            User if found, None otherwise.
        """
        return await db.get(User, user_id)

    @staticmethod
    async def get_fields(
        db: AsyncSession,
        user_id: uuid.UUID,
        fields: Iterable[str],
    ) -> dict[str, Any] | None:
        """Fetch selected columns of a user straight from the database.

        Bypasses the session identity map, so the values are always the
        stored ones.

        Args:
            db: Async database session.
            user_id: UUID primary key.
            fields: Column names to load.

        Returns:
            Mapping of column name to value, or None if the user does not exist.

        Raises:
            ValueError: If an unknown column name is requested.
        """
        names = list(fields)
        unknown = set(names) - _READABLE_FIELDS
        if unknown:
            msg = f"Unknown fields: {', '.join(sorted(unknown))}"
            raise ValueError(msg)

        stmt = select(*(getattr(User, name) for name in names)).where(
            User.id == user_id
        )
        result = await db.execute(stmt)
        row = result.first()
        if row is None:
            return None
        return dict(zip(names, row, strict=True))

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
        name: str | None = None,
        password_hash: str | None = None,
        email_verified: datetime | None = None,
        image: str | None = None,
        language: str | None = None,
    ) -> User:
        """Create a new user.

        Email is normalized to lowercase before storage.

        Args:
            db: Async database session.
            email: User email address.
            name: Display name.
            password_hash: bcrypt hash (None for provider-only users).
            email_verified: Timestamp when email was verified.
            image: Profile picture URL.
            language: Preferred UI language code.

        Returns:
            Created User with database-generated fields populated.

        Raises:
            sqlalchemy.exc.IntegrityError: If email already exists.
        """
        user = User(
            email=email.strip().lower(),
            name=name,
            password_hash=password_hash,
            email_verified=email_verified,
            image=image,
            language=language,
        )
        db.add(user)
        await db.flush()
        await db.refresh(user)
        return user

    @staticmethod
    async def update(
        db: AsyncSession,
        user_id: uuid.UUID,
        **kwargs: str | datetime | date | dict | None,
    ) -> User | None:
        """Update user fields.

        Only fields in _UPDATABLE_FIELDS are allowed. Unknown field names
        raise ValueError.

        Args:
            db: Async database session.
            user_id: UUID of the user to update.
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
            if field == "email" and isinstance(value, str):
                value = value.strip().lower()
            setattr(user, field, value)

        await db.flush()
        await db.refresh(user)
        return user
