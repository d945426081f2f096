"""Account model - identity provider connections.

Multiple rows per user (one per provider).
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fintrack.models.base import Base

if TYPE_CHECKING:
    from fintrack.models.user import User


class Account(Base):
    """OAuth/credentials provider connection for a user.

    Attributes:
        id: UUID primary key.
        user_id: FK to users table.
        type: Account type ("oauth", "credentials").
        provider: Provider name ("google", "github", "credentials").
        provider_account_id: Provider's unique user ID.
        refresh_token: OAuth refresh token.
        access_token: OAuth access token.
        expires_at: Token expiry (Unix timestamp).
        token_type: Token type (e.g., "bearer").
        scope: OAuth scopes granted.
        id_token: OIDC ID token.
        created_at: Record creation timestamp.
    """

    __tablename__ = "accounts"
    __table_args__ = (
        UniqueConstraint(
            "provider", "provider_account_id", name="uq_accounts_provider_account"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    provider: Mapped[str] = mapped_column(String(50), nullable=False)
    provider_account_id: Mapped[str] = mapped_column(String(255), nullable=False)
    refresh_token: Mapped[str | None] = mapped_column(Text(), nullable=True)
    access_token: Mapped[str | None] = mapped_column(Text(), nullable=True)
    expires_at: Mapped[int | None] = mapped_column(Integer(), nullable=True)
    token_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    scope: Mapped[str | None] = mapped_column(Text(), nullable=True)
    id_token: Mapped[str | None] = mapped_column(Text(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="accounts")
