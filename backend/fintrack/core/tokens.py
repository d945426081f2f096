"""Single-use email verification and password reset tokens.

Raw tokens are 256 bits of randomness, hex encoded. Reset tokens carry a
literal ``reset_`` prefix; verification tokens carry none. Only the SHA-256
digest of the raw token is stored.
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import StrEnum

from sqlalchemy.ext.asyncio import AsyncSession

from fintrack.core.config import settings
from fintrack.core.errors import TokenExpiredError, TokenNotFoundError
from fintrack.core.timeutils import as_utc, utcnow
from fintrack.repositories.verification_token_repository import (
    VerificationTokenRepository,
)

RESET_TOKEN_PREFIX = "reset_"  # nosec B105

# 32 bytes = 256 bits of entropy
_TOKEN_BYTES = 32


class TokenKind(StrEnum):
    """Which flow a token belongs to."""

    VERIFY = "verify"
    RESET = "reset"

    @property
    def prefix(self) -> str:
        return RESET_TOKEN_PREFIX if self is TokenKind.RESET else ""

    @property
    def ttl(self) -> timedelta:
        if self is TokenKind.RESET:
            return timedelta(seconds=settings.password_reset_token_ttl_seconds)
        return timedelta(seconds=settings.verification_token_ttl_seconds)

    @classmethod
    def from_token(cls, raw_token: str) -> "TokenKind":
        """Classify a raw token by its prefix.

        A cheap pre-validation only. The store lookup and expiry check
        are what actually authorize a token.
        """
        if raw_token.startswith(RESET_TOKEN_PREFIX):
            return cls.RESET
        return cls.VERIFY


@dataclass(frozen=True)
class IssuedToken:
    """A verification or reset token as seen by the domain.

    Attributes:
        kind: VERIFY or RESET.
        token: Raw token value (the one embedded in email links).
        identifier: Email address the token is bound to.
        expires: Absolute expiry (aware UTC).
    """

    kind: TokenKind
    token: str
    identifier: str
    expires: datetime


def hash_token(raw_token: str) -> str:
    """SHA-256 hex digest of a raw token, as stored in the database."""
    return hashlib.sha256(raw_token.encode()).hexdigest()


class TokenIssuer:
    """Issues and consumes verification tokens within one database session.

    Args:
        db: Async database session. The caller owns the transaction.
    """

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def issue(
        self,
        identifier: str,
        kind: TokenKind,
        *,
        now: datetime | None = None,
    ) -> IssuedToken:
        """Generate, store and return a new token.

        Args:
            identifier: Email address to bind the token to.
            kind: VERIFY (7 day TTL) or RESET (1 hour TTL, ``reset_`` prefix).
            now: Current time override.

        Returns:
            IssuedToken carrying the raw token value.
        """
        raw_token = kind.prefix + secrets.token_hex(_TOKEN_BYTES)
        expires = (now or utcnow()) + kind.ttl
        await VerificationTokenRepository.create(
            self._db,
            identifier=identifier,
            token_hash=hash_token(raw_token),
            expires=expires,
        )
        return IssuedToken(
            kind=kind, token=raw_token, identifier=identifier, expires=expires
        )

    async def consume(
        self,
        raw_token: str,
        *,
        now: datetime | None = None,
    ) -> IssuedToken:
        """Redeem a token exactly once.

        The row is removed with a conditional delete that returns it, so
        two concurrent redemptions cannot both succeed. The delete is
        durable only once the caller commits; if the bound operation fails
        and the session rolls back, the token is restored.

        Args:
            raw_token: Token value from the email link.
            now: Current time override.

        Returns:
            The consumed token.

        Raises:
            TokenNotFoundError: No such token (or already consumed).
            TokenExpiredError: The token's expiry has passed.
        """
        row = await VerificationTokenRepository.consume(
            self._db, hash_token(raw_token)
        )
        if row is None:
            raise TokenNotFoundError()

        identifier, expires = row
        expires = as_utc(expires)
        if expires < (now or utcnow()):
            raise TokenExpiredError()

        return IssuedToken(
            kind=TokenKind.from_token(raw_token),
            token=raw_token,
            identifier=identifier,
            expires=expires,
        )
