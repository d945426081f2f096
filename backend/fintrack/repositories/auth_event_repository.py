"""Repository for AuthEvent rows.

Events are append-only and expire one day after they are recorded.
"""

from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from fintrack.core.timeutils import utcnow
from fintrack.models.auth_event import AuthEvent


class AuthEventRepository:
    """Stateless repository for AuthEvent table operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        event: str,
        expires_at: datetime,
        email: str | None = None,
        provider: str | None = None,
    ) -> AuthEvent:
        """Record an auth event.

        Args:
            db: Async database session.
            event: Event type ("signIn", "signOut", "createUser", "linkAccount").
            expires_at: When the row may be purged.
            email: Email of the user involved.
            provider: Provider name, when applicable.

        Returns:
            Created AuthEvent.
        """
        row = AuthEvent(
            event=event,
            email=email,
            provider=provider,
            expires_at=expires_at,
        )
        db.add(row)
        await db.flush()
        await db.refresh(row)
        return row

    @staticmethod
    async def list_for_email(db: AsyncSession, email: str) -> list[AuthEvent]:
        """List events recorded for an email, oldest first."""
        stmt = (
            select(AuthEvent)
            .where(AuthEvent.email == email.lower())
            .order_by(AuthEvent.created_at, AuthEvent.id)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def delete_expired(db: AsyncSession) -> int:
        """Delete all expired events.

        Args:
            db: Async database session.

        Returns:
            Number of deleted rows.
        """
        stmt = delete(AuthEvent).where(AuthEvent.expires_at < utcnow())
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count
