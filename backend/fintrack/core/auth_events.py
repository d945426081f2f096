"""Auth lifecycle event recording.

Each event row lives for one day and is then eligible for purge through
AuthEventRepository.delete_expired().
"""

from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from fintrack.core.timeutils import utcnow
from fintrack.models.auth_event import AuthEvent, AuthEventType
from fintrack.repositories.auth_event_repository import AuthEventRepository

EVENT_TTL = timedelta(days=1)


async def record_event(
    db: AsyncSession,
    event: AuthEventType,
    *,
    email: str | None = None,
    provider: str | None = None,
    now: datetime | None = None,
) -> AuthEvent:
    """Record one auth event with the standard one-day retention.

    Args:
        db: Async database session.
        event: Event type.
        email: Email of the user involved.
        provider: Provider name, when applicable.
        now: Current time override.

    Returns:
        The stored event.
    """
    return await AuthEventRepository.create(
        db,
        event=event.value,
        email=email.lower() if email else None,
        provider=provider,
        expires_at=(now or utcnow()) + EVENT_TTL,
    )


async def record_sign_in(
    db: AsyncSession, *, email: str | None, provider: str
) -> AuthEvent:
    return await record_event(db, AuthEventType.SIGN_IN, email=email, provider=provider)


async def record_sign_out(db: AsyncSession, *, email: str | None) -> AuthEvent:
    return await record_event(db, AuthEventType.SIGN_OUT, email=email)


async def record_create_user(db: AsyncSession, *, email: str) -> AuthEvent:
    return await record_event(db, AuthEventType.CREATE_USER, email=email)


async def record_link_account(
    db: AsyncSession, *, email: str, provider: str
) -> AuthEvent:
    return await record_event(
        db, AuthEventType.LINK_ACCOUNT, email=email, provider=provider
    )
