"""Account linking for external identity providers.

Automatic linking by verified email with pre-hijack defense. The provider
client has already confirmed the identity; this module only decides which
local user it maps to.

Rules:
1. If provider+account_id already exists → returning user (no linking needed)
2. If email exists AND both sides verified → link accounts (same user)
3. If email exists but either side unverified → REJECT (pre-hijack defense)
4. If no matching email → create new user
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from fintrack.core.errors import AccountLinkingBlockedError
from fintrack.core.timeutils import utcnow
from fintrack.models.user import User
from fintrack.repositories.account_repository import AccountRepository
from fintrack.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderIdentity:
    """Identity confirmed by an external provider.

    Attributes:
        provider: Provider name (e.g., "google", "github").
        provider_account_id: Provider's unique user identifier.
        email: Email reported by the provider.
        email_verified: Whether the provider verified the email.
        name: Display name from the provider profile.
        image: Profile picture URL from the provider profile.
    """

    provider: str
    provider_account_id: str
    email: str
    email_verified: bool = False
    name: str | None = None
    image: str | None = None


@dataclass(frozen=True)
class LinkResult:
    """Outcome of resolving a provider identity to a local user.

    Attributes:
        user: The local user.
        created: A new user row was created.
        linked: A new provider account row was attached to the user.
    """

    user: User
    created: bool
    linked: bool


async def find_or_create_user_for_provider(
    *,
    db: AsyncSession,
    identity: ProviderIdentity,
) -> LinkResult:
    """Find or create the local user for a provider sign-in.

    - Returning users: matched by provider + provider_account_id
    - Account linking: matched by verified email (both sides must be verified)
    - Pre-hijack defense: unverified emails never trigger linking

    A newly linked account back-fills the user's image from the provider
    profile when the user has none.

    Args:
        db: Async database session.
        identity: Provider-confirmed identity.

    Returns:
        LinkResult for the resolved user.

    Raises:
        AccountLinkingBlockedError: Email matches an existing user but one
            side is unverified.
    """
    # Normalize email early for consistent matching
    email = identity.email.strip().lower()
    provider = identity.provider

    # Step 1: Check if this provider+account_id already exists (returning user)
    existing_account = await AccountRepository.get_by_provider_and_account_id(
        db, provider, identity.provider_account_id
    )
    if existing_account:
        user = await UserRepository.get_by_id(db, existing_account.user_id)
        if user:
            logger.info(
                "Returning provider user",
                extra={"user_id": str(user.id), "provider": provider},
            )
            return LinkResult(user=user, created=False, linked=False)

    # Step 2: Check if email exists for potential account linking
    existing_user = await UserRepository.get_by_email(db, email)

    if existing_user:
        # Security: Only link if BOTH the provider AND existing account verify email
        can_link = identity.email_verified and existing_user.email_verified is not None

        if not can_link:
            logger.warning(
                "Provider account linking blocked by email verification",
                extra={
                    "provider": provider,
                    "provider_verified": identity.email_verified,
                    "existing_verified": existing_user.email_verified is not None,
                },
            )
            msg = (
                "Account linking blocked by email verification. "
                "Please sign in with your original method first."
            )
            raise AccountLinkingBlockedError(msg)

        await AccountRepository.create(
            db,
            user_id=existing_user.id,
            type="oauth",
            provider=provider,
            provider_account_id=identity.provider_account_id,
        )
        if identity.image and not existing_user.image:
            logger.info("Updating user image for %s", existing_user.email)
            await UserRepository.update(db, existing_user.id, image=identity.image)
        logger.info(
            "Linked provider account to existing user",
            extra={"user_id": str(existing_user.id), "provider": provider},
        )
        return LinkResult(user=existing_user, created=False, linked=True)

    # Step 3: Create new user + account
    new_user = await UserRepository.create(
        db,
        email=email,
        name=identity.name,
        image=identity.image,
        email_verified=utcnow() if identity.email_verified else None,
    )
    await AccountRepository.create(
        db,
        user_id=new_user.id,
        type="oauth",
        provider=provider,
        provider_account_id=identity.provider_account_id,
    )
    logger.info(
        "Created new provider user",
        extra={"user_id": str(new_user.id), "provider": provider},
    )
    return LinkResult(user=new_user, created=True, linked=True)
