"""Session token signing and cookie management.

Pipeline:
- encode_session_token: sign claims as an HS256 JWT, fresh iat, absolute exp
- decode_session_token: verify signature, exp, aud, iss and rebuild claims
- set_auth_cookie / clear_auth_cookie: httpOnly session cookie
"""

from datetime import datetime
from typing import Any

import jwt
from fastapi import Response

from fintrack.core.config import settings
from fintrack.core.session_tokens import SessionToken
from fintrack.core.timeutils import utcnow

_ALGORITHM = "HS256"

# Claims owned by the JWT envelope rather than the session payload
_RESERVED_CLAIMS = frozenset({"sub", "aud", "iss", "iat", "exp", "nbf", "jti"})


def _secret(secret: str | None) -> str:
    return secret if secret is not None else settings.auth_secret.get_secret_value()


def encode_session_token(
    token: SessionToken,
    *,
    now: datetime | None = None,
    secret: str | None = None,
) -> tuple[str, SessionToken]:
    """Sign a session token.

    ``iat`` is always set to now. ``exp`` is kept when the token already has
    one, so re-issuing a refreshed token never extends the absolute lifetime
    beyond the first sign-in; a new token gets now + session max age.

    Args:
        token: Claims to sign. ``id`` becomes ``sub``.
        now: Current time override.
        secret: HMAC signing secret. Defaults to settings.auth_secret.

    Returns:
        Tuple of (encoded JWT, token with the iat/exp that were signed).
    """
    issued_at = int((now or utcnow()).timestamp())
    expires = token.exp or issued_at + settings.session_max_age_seconds
    signed = token.model_copy(update={"iat": issued_at, "exp": expires})

    claims = signed.model_dump(
        mode="json", exclude={"id", "iat", "exp"}, exclude_none=True
    )
    payload = {
        **claims,
        "sub": signed.id,
        "aud": settings.auth_audience,
        "iss": settings.auth_issuer,
        "iat": issued_at,
        "exp": expires,
    }
    return jwt.encode(payload, _secret(secret), algorithm=_ALGORITHM), signed


def decode_session_token(encoded: str, *, secret: str | None = None) -> SessionToken:
    """Verify a session JWT and rebuild its claims.

    Args:
        encoded: JWT string from the session cookie.
        secret: HMAC signing secret. Defaults to settings.auth_secret.

    Returns:
        Decoded SessionToken.

    Raises:
        jwt.InvalidTokenError: Bad signature, expired, wrong aud/iss, or
            missing required claims.
    """
    payload: dict[str, Any] = jwt.decode(
        encoded,
        _secret(secret),
        algorithms=[_ALGORITHM],
        audience=settings.auth_audience,
        issuer=settings.auth_issuer,
        options={"require": ["sub", "exp", "iat"]},
    )
    claims = {k: v for k, v in payload.items() if k not in _RESERVED_CLAIMS}
    return SessionToken(
        **claims,
        id=payload["sub"],
        iat=int(payload["iat"]),
        exp=int(payload["exp"]),
    )


def set_auth_cookie(response: Response, token: str, *, expires_at: int) -> None:
    """Set httpOnly JWT cookie on response.

    Security: httpOnly prevents XSS cookie theft. Secure flag and SameSite
    are configured via settings for environment-appropriate security.

    Args:
        response: FastAPI response object.
        token: JWT token string.
        expires_at: Absolute token expiry (epoch seconds); the cookie lives
            exactly as long as the token.
    """
    max_age = max(expires_at - int(utcnow().timestamp()), 0)
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite=settings.auth_cookie_samesite,
        path="/",
        max_age=max_age,
        domain=settings.auth_cookie_domain or None,
    )


def clear_auth_cookie(response: Response) -> None:
    """Expire the session cookie.

    Attributes must match set_auth_cookie() or browsers keep the cookie.
    """
    response.delete_cookie(
        key=settings.auth_cookie_name,
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite=settings.auth_cookie_samesite,
        path="/",
        domain=settings.auth_cookie_domain or None,
    )
