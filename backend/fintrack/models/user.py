"""User model - authentication foundation.

Holds identity, credential hash, role/status gates and the profile fields
projected into session tokens.
"""

import uuid
from datetime import date, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from sqlalchemy import CheckConstraint, Date, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fintrack.models.base import Base, JSONType, TimestampMixin

if TYPE_CHECKING:
    from fintrack.models.account import Account

_CASCADE_ALL_DELETE_ORPHAN = "all, delete-orphan"


class UserRole(StrEnum):
    """Authorization role stored on the user and embedded in sessions."""

    USER = "USER"
    ADMIN = "ADMIN"


class UserStatus(StrEnum):
    """Account status. Only ACTIVE accounts may sign in."""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    BANNED = "BANNED"


class User(Base, TimestampMixin):
    """User account for authentication.

    Attributes:
        id: UUID primary key.
        email: Unique, lower-cased email address.
        name: Display name (from registration or provider profile).
        image: Profile picture URL.
        password_hash: bcrypt hash. NULL for provider-only users.
        role: USER or ADMIN.
        status: ACTIVE, INACTIVE or BANNED.
        email_verified: Timestamp when email was verified. NULL = unverified.
        language: Preferred UI language code.
        country: ISO country code.
        phone: Phone number in E.164-like form.
        date_of_birth: Date of birth.
        last_login: Timestamp of the last successful credential login.
        settings: Opaque preferences blob.
        created_at: Account creation timestamp (from TimestampMixin).
        updated_at: Last modification timestamp (from TimestampMixin).
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("role IN ('USER', 'ADMIN')", name="ck_users_role"),
        CheckConstraint(
            "status IN ('ACTIVE', 'INACTIVE', 'BANNED')", name="ck_users_status"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=uuid.uuid4,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    image: Mapped[str | None] = mapped_column(Text(), nullable=True)
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=UserRole.USER.value,
        server_default=UserRole.USER.value,
    )
    status: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=UserStatus.ACTIVE.value,
        server_default=UserStatus.ACTIVE.value,
    )
    email_verified: Mapped[datetime | None] = mapped_column(nullable=True)
    language: Mapped[str | None] = mapped_column(String(10), nullable=True)
    country: Mapped[str | None] = mapped_column(String(2), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    date_of_birth: Mapped[date | None] = mapped_column(Date(), nullable=True)
    last_login: Mapped[datetime | None] = mapped_column(nullable=True)
    settings: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)

    # Relationships
    accounts: Mapped[list["Account"]] = relationship(
        "Account",
        back_populates="user",
        cascade=_CASCADE_ALL_DELETE_ORPHAN,
    )
