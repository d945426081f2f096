"""Shared dependencies for API endpoints.

Authentication dependencies: every authenticated request decodes the
session cookie, runs the session lifecycle (periodic re-hydration from the
store) and re-issues the cookie when the token was refreshed.
"""

import uuid
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from fintrack.core.auth import (
    decode_session_token,
    encode_session_token,
    set_auth_cookie,
)
from fintrack.core.config import settings
from fintrack.core.database import get_db
from fintrack.core.email import Mailer, ResendMailer
from fintrack.core.errors import AccountNotActiveError
from fintrack.core.session_tokens import SessionToken, SessionTokenLifecycle
from fintrack.models.user import UserStatus

# Generic 401 detail, vague to prevent information leakage.
_UNAUTHORIZED_DETAIL = {
    "code": "UNAUTHORIZED",
    "message": "Authentication required",
}

DbSession = Annotated[AsyncSession, Depends(get_db)]


def get_mailer() -> Mailer:
    """Mail transport used by auth endpoints."""
    return ResendMailer()


MailerDep = Annotated[Mailer, Depends(get_mailer)]


def read_session_cookie(request: Request) -> SessionToken | None:
    """Decode the session cookie without running the lifecycle.

    Returns:
        The decoded token, or None when the cookie is absent or invalid.
    """
    encoded = request.cookies.get(settings.auth_cookie_name)
    if not encoded:
        return None
    try:
        return decode_session_token(encoded)
    except jwt.InvalidTokenError:
        return None


async def get_session_token(
    request: Request,
    response: Response,
    db: DbSession,
) -> SessionToken:
    """Get the current session token, refreshed if it is due.

    Validation steps:
    1. Read JWT from cookie
    2. Decode + verify signature (HS256), exp, aud, iss
    3. Re-hydrate claims from the store when older than the refresh interval
    4. Re-issue the cookie with a fresh iat after a successful refresh

    Raises:
        HTTPException: 401 for any auth failure.
    """
    token = read_session_cookie(request)
    if token is None or not token.id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=_UNAUTHORIZED_DETAIL,
        )

    lifecycle = SessionTokenLifecycle(db)
    if lifecycle.needs_refresh(token):
        refreshed = await lifecycle.refresh(token)
        if refreshed.iat != token.iat:
            encoded, refreshed = encode_session_token(refreshed)
            set_auth_cookie(response, encoded, expires_at=refreshed.exp or 0)
        token = refreshed

    return token


CurrentSessionToken = Annotated[SessionToken, Depends(get_session_token)]


async def get_current_user_id(token: CurrentSessionToken) -> uuid.UUID:
    """Get the current user's ID from an ACTIVE session.

    Raises:
        HTTPException: 401 if the token subject is not a UUID.
        AccountNotActiveError: 403 if the session's status is not ACTIVE.
    """
    try:
        user_id = uuid.UUID(str(token.id))
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=_UNAUTHORIZED_DETAIL,
        ) from exc

    if token.status is not None and token.status != UserStatus.ACTIVE:
        raise AccountNotActiveError(token.status)

    return user_id


CurrentUserId = Annotated[uuid.UUID, Depends(get_current_user_id)]
