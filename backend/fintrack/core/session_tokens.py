"""Session token lifecycle.

A session token is a signed, denormalized snapshot of the user. This module
owns the transitions of its claims:

- mint: first login copies the authenticated user into the token
- apply_update: an explicit "update" trigger overlays a profile patch
- needs_refresh / refresh: tokens older than the refresh interval are
  re-hydrated from the store (the only caching policy; staleness <= 1 hour)
- project_session: the token is projected into the Session view

Store failures during refresh or update are logged and swallowed. A
best-effort re-hydration must never break an otherwise valid session.
Signing and cookie handling live in fintrack.core.auth.
"""

import logging
import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fintrack.core.config import settings
from fintrack.core.timeutils import utcnow
from fintrack.models.user import UserRole, UserStatus
from fintrack.repositories.user_repository import UserRepository

_default_logger = logging.getLogger(__name__)

UPDATE_TRIGGER = "update"

# Columns re-read from the store on refresh, in claim order
_REFRESH_FIELDS = (
    "name",
    "email",
    "image",
    "role",
    "phone",
    "language",
    "country",
    "status",
    "last_login",
    "email_verified",
)


# ===================================================================
# Record types
# ===================================================================


class SessionToken(BaseModel):
    """Claims carried by the signed session token.

    ``iat`` and ``exp`` are seconds since the epoch and are owned by the
    signing step, not by the lifecycle transitions.
    """

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    name: str | None = None
    email: str | None = None
    picture: str | None = None
    role: str | None = None
    status: str | None = None
    phone: str | None = None
    language: str | None = None
    country: str | None = None
    last_login: datetime | None = None
    email_verified: datetime | None = None
    iat: int | None = None
    exp: int | None = None


class SessionUser(BaseModel):
    """User block of the Session view."""

    id: str | None = None
    name: str | None = None
    email: str | None = None
    image: str | None = None
    role: str = UserRole.USER.value
    phone: str | None = None
    language: str | None = None
    country: str | None = None
    status: str = UserStatus.ACTIVE.value
    last_login: datetime | None = None


class Session(BaseModel):
    """Session view handed to the rest of the application."""

    user: SessionUser = Field(default_factory=SessionUser)
    expires: datetime | None = None


class SessionPatch(BaseModel):
    """Partial profile pushed into an active session.

    Only fields that are set (not None) are applied.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(None, min_length=1, max_length=255)
    email: EmailStr | None = None
    image: str | None = Field(None, max_length=2048)
    phone: str | None = Field(None, max_length=20)
    language: str | None = Field(None, max_length=10)
    country: str | None = Field(None, max_length=2)


# ===================================================================
# Pure helpers
# ===================================================================


def _refresh_interval(interval: timedelta | None) -> timedelta:
    if interval is not None:
        return interval
    return timedelta(seconds=settings.session_refresh_interval_seconds)


def needs_refresh(
    token: SessionToken,
    now: datetime | None = None,
    interval: timedelta | None = None,
) -> bool:
    """Decide whether a token is due for re-hydration.

    Args:
        token: Token to inspect.
        now: Current time. Defaults to utcnow().
        interval: Maximum token age. Defaults to the configured interval.

    Returns:
        True when the token names a user and its ``iat`` is missing or
        older than the interval.
    """
    if not token.id:
        return False
    if token.iat is None:
        return True
    age_seconds = (now or utcnow()).timestamp() - token.iat
    return age_seconds > _refresh_interval(interval).total_seconds()


def _as_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _claims_from_user(user: Any) -> dict[str, Any]:
    """Map user fields onto token claim names."""
    return {
        "id": _as_str(getattr(user, "id", None)),
        "name": getattr(user, "name", None),
        "email": getattr(user, "email", None),
        "picture": getattr(user, "image", None),
        "role": getattr(user, "role", None),
        "phone": getattr(user, "phone", None),
        "language": getattr(user, "language", None),
        "country": getattr(user, "country", None),
        "status": getattr(user, "status", None),
        "last_login": getattr(user, "last_login", None),
        "email_verified": getattr(user, "email_verified", None),
    }


def mint(token: SessionToken, user: Any) -> SessionToken:
    """Copy the authenticated user's profile into a token.

    Does not touch ``iat``; that is set when the token is signed.

    Args:
        token: Token being built (usually empty).
        user: Authenticated user (ORM row or any object with user fields).

    Returns:
        New token with the user's claims.
    """
    return token.model_copy(update=_claims_from_user(user))


def project_session(session: Session | None, token: SessionToken) -> Session:
    """Project a token into the Session view.

    Pure. ``role`` defaults to USER and ``status`` to ACTIVE when the token
    does not carry them.

    Args:
        session: Base session (keeps its ``expires`` when set).
        token: Decoded token claims.

    Returns:
        Session view of the token.
    """
    expires = session.expires if session is not None else None
    if expires is None and token.exp is not None:
        expires = datetime.fromtimestamp(token.exp, tz=UTC)

    return Session(
        user=SessionUser(
            id=token.id,
            name=token.name,
            email=token.email,
            image=token.picture,
            role=token.role or UserRole.USER.value,
            phone=token.phone,
            language=token.language,
            country=token.country,
            status=token.status or UserStatus.ACTIVE.value,
            last_login=token.last_login,
        ),
        expires=expires,
    )


# ===================================================================
# Lifecycle
# ===================================================================


class SessionTokenLifecycle:
    """Effectful transitions of a session token.

    Args:
        db: Async database session used for refresh and update writes.
        logger: Sink for refresh/update failures. Defaults to the module logger.
        refresh_interval: Re-hydration interval. Defaults to settings.
    """

    def __init__(
        self,
        db: AsyncSession,
        *,
        logger: logging.Logger | None = None,
        refresh_interval: timedelta | None = None,
    ) -> None:
        self._db = db
        self._logger = logger or _default_logger
        self._interval = _refresh_interval(refresh_interval)

    def mint(self, token: SessionToken, user: Any) -> SessionToken:
        """See module-level mint()."""
        return mint(token, user)

    async def apply_update(
        self,
        token: SessionToken,
        patch: SessionPatch,
        *,
        persist: bool = True,
    ) -> SessionToken:
        """Overlay a profile patch onto the token.

        Fields that are None in the patch leave the token untouched. A
        changed email clears ``email_verified``. With
        ``persist``, the patch is written to the store first; if that write
        fails the session is rolled back, the failure is logged and the
        token is returned unmodified.

        Args:
            token: Current token.
            patch: Profile fields to apply.
            persist: Write the patch to the user record before applying.

        Returns:
            Updated token (or the original on store failure).
        """
        changes = patch.model_dump(exclude_none=True)
        if not changes:
            return token
        if "email" in changes:
            changes["email"] = changes["email"].strip().lower()
            if changes["email"] != (token.email or "").lower():
                # A new address has to be verified again
                changes["email_verified"] = None

        if persist:
            try:
                user = await UserRepository.update(
                    self._db, uuid.UUID(str(token.id)), **changes
                )
            except (SQLAlchemyError, ValueError):
                await self._db.rollback()
                self._logger.exception(
                    "Error updating user %s in database during session update",
                    token.id,
                )
                return token
            if user is None:
                self._logger.error(
                    "Error updating user %s in database during session update",
                    token.id,
                )
                return token

        if "image" in changes:
            changes["picture"] = changes.pop("image")
        return token.model_copy(update=changes)

    def needs_refresh(
        self, token: SessionToken, now: datetime | None = None
    ) -> bool:
        """See module-level needs_refresh(), using this lifecycle's interval."""
        return needs_refresh(token, now, self._interval)

    async def refresh(
        self,
        token: SessionToken,
        *,
        now: datetime | None = None,
    ) -> SessionToken:
        """Re-hydrate the token's profile claims from the store.

        On success every profile claim is overwritten with the stored value
        and ``iat`` is moved to ``now``. A missing user or a store error is
        logged and the token is returned as-is.

        Args:
            token: Token whose ``id`` names the user to re-read.
            now: Current time override.

        Returns:
            Refreshed token, or the original on failure.
        """
        try:
            user_id = uuid.UUID(str(token.id))
        except ValueError:
            self._logger.error(
                "Error during token refresh: User %s not found.", token.id
            )
            return token

        try:
            row = await UserRepository.get_fields(self._db, user_id, _REFRESH_FIELDS)
        except SQLAlchemyError:
            await self._db.rollback()
            self._logger.exception("Error during token refresh for user %s", token.id)
            return token

        if row is None:
            self._logger.error(
                "Error during token refresh: User %s not found.", token.id
            )
            return token

        claims = dict(row)
        claims["picture"] = claims.pop("image")
        claims["iat"] = int((now or utcnow()).timestamp())
        return token.model_copy(update=claims)

    async def process(
        self,
        token: SessionToken,
        *,
        user: Any = None,
        trigger: str | None = None,
        session_patch: SessionPatch | None = None,
        now: datetime | None = None,
    ) -> SessionToken:
        """Run one inspection of the token.

        Order: mint (when a freshly authenticated user is given), explicit
        update (when ``trigger == "update"`` with a patch), then periodic
        refresh. A token minted in this call is not refreshed again since
        its data was just read from the store.

        Args:
            token: Current (possibly empty) token.
            user: Freshly authenticated user, on sign-in only.
            trigger: "update" for an explicit session update.
            session_patch: Patch for the update trigger.
            now: Current time override.

        Returns:
            The resulting token.
        """
        if user is not None:
            token = self.mint(token, user)

        if trigger == UPDATE_TRIGGER and session_patch is not None:
            token = await self.apply_update(token, session_patch)

        if user is None and self.needs_refresh(token, now):
            token = await self.refresh(token, now=now)

        return token
