"""Tests for verification / reset token issue and consume."""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from fintrack.core.errors import TokenExpiredError, TokenNotFoundError
from fintrack.core.timeutils import as_utc
from fintrack.core.tokens import (
    RESET_TOKEN_PREFIX,
    TokenIssuer,
    TokenKind,
    hash_token,
)
from fintrack.repositories.verification_token_repository import (
    VerificationTokenRepository,
)

_EMAIL = "user@example.com"
_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


class TestTokenKind:
    """Tests for TokenKind classification."""

    def test_reset_prefix(self):
        assert TokenKind.RESET.prefix == RESET_TOKEN_PREFIX == "reset_"
        assert TokenKind.VERIFY.prefix == ""

    def test_ttls(self):
        assert TokenKind.VERIFY.ttl == timedelta(days=7)
        assert TokenKind.RESET.ttl == timedelta(hours=1)

    def test_from_token(self):
        assert TokenKind.from_token("reset_abc") is TokenKind.RESET
        assert TokenKind.from_token("abc") is TokenKind.VERIFY


class TestHashToken:
    def test_sha256_hex(self):
        digest = hash_token("abc")
        assert digest == (
            "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
        )

    def test_deterministic(self):
        assert hash_token("value") == hash_token("value")


class TestIssue:
    """Tests for TokenIssuer.issue()."""

    async def test_verify_token_shape(self, db_session: AsyncSession):
        issued = await TokenIssuer(db_session).issue(
            _EMAIL, TokenKind.VERIFY, now=_NOW
        )
        assert issued.kind is TokenKind.VERIFY
        assert len(issued.token) == 64
        int(issued.token, 16)
        assert issued.identifier == _EMAIL
        assert issued.expires == _NOW + timedelta(days=7)

    async def test_reset_token_shape(self, db_session: AsyncSession):
        issued = await TokenIssuer(db_session).issue(
            _EMAIL, TokenKind.RESET, now=_NOW
        )
        assert issued.token.startswith("reset_")
        assert len(issued.token) == len("reset_") + 64
        assert issued.expires == _NOW + timedelta(hours=1)

    async def test_tokens_are_unique(self, db_session: AsyncSession):
        issuer = TokenIssuer(db_session)
        first = await issuer.issue(_EMAIL, TokenKind.VERIFY)
        second = await issuer.issue(_EMAIL, TokenKind.VERIFY)
        assert first.token != second.token

    async def test_only_digest_is_stored(self, db_session: AsyncSession):
        issued = await TokenIssuer(db_session).issue(_EMAIL, TokenKind.VERIFY)

        assert await VerificationTokenRepository.get(db_session, issued.token) is None
        stored = await VerificationTokenRepository.get(
            db_session, hash_token(issued.token)
        )
        assert stored is not None
        assert stored.identifier == _EMAIL


class TestConsume:
    """Tests for TokenIssuer.consume()."""

    async def test_consume_returns_bound_identifier(self, db_session: AsyncSession):
        issuer = TokenIssuer(db_session)
        issued = await issuer.issue(_EMAIL, TokenKind.RESET, now=_NOW)

        consumed = await issuer.consume(issued.token, now=_NOW)

        assert consumed.identifier == _EMAIL
        assert consumed.kind is TokenKind.RESET
        assert as_utc(consumed.expires) == issued.expires

    async def test_consume_is_single_use(self, db_session: AsyncSession):
        issuer = TokenIssuer(db_session)
        issued = await issuer.issue(_EMAIL, TokenKind.VERIFY)

        await issuer.consume(issued.token)
        with pytest.raises(TokenNotFoundError):
            await issuer.consume(issued.token)

    async def test_unknown_token(self, db_session: AsyncSession):
        with pytest.raises(TokenNotFoundError):
            await TokenIssuer(db_session).consume("0" * 64)

    async def test_expired_token_is_rejected_and_removed(
        self, db_session: AsyncSession
    ):
        issuer = TokenIssuer(db_session)
        issued = await issuer.issue(_EMAIL, TokenKind.RESET, now=_NOW)

        with pytest.raises(TokenExpiredError):
            await issuer.consume(issued.token, now=_NOW + timedelta(hours=2))

        stored = await VerificationTokenRepository.get(
            db_session, hash_token(issued.token)
        )
        assert stored is None

    async def test_rollback_restores_consumed_token(self, db_session: AsyncSession):
        """A consume that is never committed leaves the token redeemable."""
        issuer = TokenIssuer(db_session)
        issued = await issuer.issue(_EMAIL, TokenKind.VERIFY)
        await db_session.commit()

        await issuer.consume(issued.token)
        await db_session.rollback()

        consumed = await issuer.consume(issued.token)
        assert consumed.identifier == _EMAIL

    async def test_expiry_boundary_is_still_valid(self, db_session: AsyncSession):
        issuer = TokenIssuer(db_session)
        issued = await issuer.issue(_EMAIL, TokenKind.VERIFY, now=_NOW)

        consumed = await issuer.consume(issued.token, now=issued.expires)
        assert consumed.identifier == _EMAIL
