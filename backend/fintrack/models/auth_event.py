"""AuthEvent model - short-lived audit trail of auth lifecycle events."""

import uuid
from datetime import datetime
from enum import StrEnum

from sqlalchemy import CheckConstraint, DateTime, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from fintrack.models.base import Base


class AuthEventType(StrEnum):
    """Kinds of auth lifecycle events."""

    SIGN_IN = "signIn"
    SIGN_OUT = "signOut"
    CREATE_USER = "createUser"
    LINK_ACCOUNT = "linkAccount"


class AuthEvent(Base):
    """One recorded auth event.

    Attributes:
        id: UUID primary key.
        event: Event type (see AuthEventType).
        email: Email of the user involved, when known.
        provider: Provider that triggered the event, when applicable.
        created_at: When the event was recorded.
        expires_at: When the row becomes eligible for purge.
    """

    __tablename__ = "auth_events"
    __table_args__ = (
        CheckConstraint(
            "event IN ('signIn', 'signOut', 'createUser', 'linkAccount')",
            name="ck_auth_events_event",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=uuid.uuid4,
    )
    event: Mapped[str] = mapped_column(String(20), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    provider: Mapped[str | None] = mapped_column(String(50), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )
