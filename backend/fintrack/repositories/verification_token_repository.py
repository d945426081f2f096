"""Repository for VerificationToken CRUD operations.

Single-use email verification and password reset tokens, stored as
SHA-256 digests with a time-limited expiry.
"""

from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from fintrack.core.timeutils import utcnow
from fintrack.models.verification_token import VerificationToken


class VerificationTokenRepository:
    """Stateless repository for VerificationToken table operations.

    All methods are static; no instance state.
    """

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        identifier: str,
        token_hash: str,
        expires: datetime,
    ) -> VerificationToken:
        """Store a new verification token.

        Args:
            db: Async database session.
            identifier: Email address.
            token_hash: SHA-256 hash of the plain token.
            expires: Token expiry timestamp.

        Returns:
            Created VerificationToken.
        """
        vt = VerificationToken(
            identifier=identifier,
            token=token_hash,
            expires=expires,
        )
        db.add(vt)
        await db.flush()
        # No server-generated fields to refresh
        return vt

    @staticmethod
    async def get(db: AsyncSession, token_hash: str) -> VerificationToken | None:
        """Look up a token by its digest.

        Args:
            db: Async database session.
            token_hash: SHA-256 hash of the plain token.

        Returns:
            VerificationToken if found, None otherwise.
        """
        stmt = select(VerificationToken).where(VerificationToken.token == token_hash)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def delete(db: AsyncSession, token_hash: str) -> None:
        """Delete a token (single-use cleanup).

        Args:
            db: Async database session.
            token_hash: SHA-256 hash of the plain token.
        """
        stmt = delete(VerificationToken).where(VerificationToken.token == token_hash)
        await db.execute(stmt)

    @staticmethod
    async def consume(
        db: AsyncSession, token_hash: str
    ) -> tuple[str, datetime] | None:
        """Delete a token and return the row it had, in one statement.

        Two concurrent consumers of the same token cannot both get a row
        back. The deletion is part of the caller's transaction and rolls
        back with it.

        Args:
            db: Async database session.
            token_hash: SHA-256 hash of the plain token.

        Returns:
            (identifier, expires) of the deleted row, or None if no row matched.
        """
        stmt = (
            delete(VerificationToken)
            .where(VerificationToken.token == token_hash)
            .returning(VerificationToken.identifier, VerificationToken.expires)
        )
        result = await db.execute(stmt)
        row = result.first()
        if row is None:
            return None
        return row.identifier, row.expires

    @staticmethod
    async def delete_all_for_identifier(
        db: AsyncSession,
        *,
        identifier: str,
    ) -> None:
        """Delete all tokens for an identifier.

        Args:
            db: Async database session.
            identifier: Email address.
        """
        stmt = delete(VerificationToken).where(
            VerificationToken.identifier == identifier,
        )
        await db.execute(stmt)

    @staticmethod
    async def delete_expired(db: AsyncSession) -> int:
        """Delete all expired tokens (periodic cleanup).

        Args:
            db: Async database session.

        Returns:
            Number of deleted rows.
        """
        stmt = delete(VerificationToken).where(
            VerificationToken.expires < utcnow(),
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count
