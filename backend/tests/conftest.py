"""Shared fixtures for the Fintrack auth test suite.

Tests run against an in-memory SQLite database (aiosqlite) so no external
services are needed. Email delivery is replaced by RecordingMailer.
"""

import re
import uuid
from collections.abc import AsyncGenerator, Iterator
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from fintrack.core.auth import encode_session_token
from fintrack.core.config import settings
from fintrack.core.errors import EmailDeliveryError
from fintrack.core.passwords import hash_password
from fintrack.core.rate_limiting import limiter
from fintrack.core.session_tokens import SessionToken, mint
from fintrack.models import Base, User

TEST_DATABASE_URL = "sqlite+aiosqlite://"

# Test user ID (consistent across tests for predictable auth)
TEST_USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
TEST_USER_EMAIL = "test@example.com"
TEST_PASSWORD = "ValidPass1"  # nosec B105

# Security: This is a test-only secret. Production uses a real secret from env.
TEST_AUTH_SECRET = "test-secret-key-that-is-at-least-32-characters-long"  # nosec B105

# Low bcrypt cost factor for fast tests
_TEST_BCRYPT_ROUNDS = 4

_TOKEN_IN_LINK = re.compile(r"token=([A-Za-z0-9_]+)")


def create_session_jwt(user: User, *, now: datetime | None = None) -> str:
    """Mint and sign a session token for a user, as sign-in would.

    Args:
        user: User whose profile is copied into the token.
        now: Issued-at time. Defaults to now.

    Returns:
        Encoded JWT string.
    """
    encoded, _ = encode_session_token(mint(SessionToken(), user), now=now)
    return encoded


# =============================================================================
# Mail
# =============================================================================


@dataclass
class SentEmail:
    to: str
    subject: str
    body: str

    @property
    def token(self) -> str:
        """Raw token embedded in the message link."""
        match = _TOKEN_IN_LINK.search(self.body)
        assert match is not None, f"No token link in: {self.body}"
        return match.group(1)


class RecordingMailer:
    """Mailer that keeps messages in memory instead of sending them."""

    def __init__(self) -> None:
        self.sent: list[SentEmail] = []

    async def send(self, to: str, subject: str, body: str) -> None:
        self.sent.append(SentEmail(to=to, subject=subject, body=body))

    @property
    def last(self) -> SentEmail:
        assert self.sent, "No email was sent"
        return self.sent[-1]


class FailingMailer:
    """Mailer whose provider always rejects the message."""

    async def send(self, to: str, subject: str, body: str) -> None:  # noqa: ARG002
        raise EmailDeliveryError()


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


# =============================================================================
# Settings
# =============================================================================


@pytest.fixture(autouse=True)
def auth_settings() -> Iterator[None]:
    """Apply test settings and restore the originals afterwards.

    Cheap bcrypt, a fixed signing secret, no rate limiting, and a
    non-Secure cookie so the http:// test client sends it back.
    """
    overrides = {
        "auth_secret": SecretStr(TEST_AUTH_SECRET),
        "bcrypt_rounds": _TEST_BCRYPT_ROUNDS,
        "auth_cookie_secure": False,
        "rate_limit_enabled": False,
        "app_base_url": "http://localhost:3000",
    }
    originals = {name: getattr(settings, name) for name in overrides}
    original_limiter_enabled = limiter.enabled

    for name, value in overrides.items():
        setattr(settings, name, value)
    limiter.enabled = False

    yield

    for name, value in originals.items():
        setattr(settings, name, value)
    limiter.enabled = original_limiter_enabled


# =============================================================================
# Database
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create a fresh in-memory database with all tables."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


# =============================================================================
# Users
# =============================================================================


async def _add_user(db: AsyncSession, user: User) -> User:
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def verified_user(db_session: AsyncSession) -> User:
    """Credentials user with a verified email and TEST_PASSWORD."""
    return await _add_user(
        db_session,
        User(
            id=TEST_USER_ID,
            email=TEST_USER_EMAIL,
            name="Test User",
            password_hash=hash_password(TEST_PASSWORD),
            email_verified=datetime.now(UTC),
            language="en",
            country="IT",
        ),
    )


@pytest_asyncio.fixture
async def unverified_user(db_session: AsyncSession) -> User:
    """Credentials user registered just now, email not yet verified."""
    return await _add_user(
        db_session,
        User(
            email="fresh@example.com",
            name="Fresh User",
            password_hash=hash_password(TEST_PASSWORD),
        ),
    )


@pytest_asyncio.fixture
async def stale_unverified_user(db_session: AsyncSession) -> User:
    """Credentials user registered 31 days ago, email never verified."""
    return await _add_user(
        db_session,
        User(
            email="stale@example.com",
            name="Stale User",
            password_hash=hash_password(TEST_PASSWORD),
            created_at=datetime.now(UTC) - timedelta(days=31),
        ),
    )


# =============================================================================
# API Test Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def client(
    db_engine, mailer: RecordingMailer
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client without a session cookie.

    get_db is overridden to use the test database (same commit/rollback
    behavior as production) and get_mailer to record outgoing email.

    Args:
        db_engine: Test database engine (needed for DB override).
        mailer: Recording mailer injected into auth endpoints.

    Yields:
        AsyncClient for the FastAPI app.
    """
    from fintrack.api.deps import get_mailer
    from fintrack.core.database import get_db
    from fintrack.main import app

    test_session_factory = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with test_session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def auth_client(
    client: AsyncClient, verified_user: User
) -> AsyncGenerator[AsyncClient, None]:
    """The test client carrying a fresh session cookie for verified_user."""
    client.cookies.set(settings.auth_cookie_name, create_session_jwt(verified_user))
    yield client
