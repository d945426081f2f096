"""Authentication endpoints.

Credential lifecycle (sign-up, email verification, password reset and
change) plus session management (sign-in, session read/update, profile
update, sign-out, redirect resolution).

Security considerations:
- signin: constant-time comparison via DUMMY_HASH prevents user enumeration
- forgot-password / resend-verification: identical response whether or not
  the account exists
- reset-password / verify-email: tokens are single-use and consumed atomically
- every post-auth redirect goes through resolve_redirect()

Action endpoints answer with ``{"success": true}`` or ``{"error": "..."}``
and an HTTP status that follows the error class.
"""

from fastapi import APIRouter, Query, Request, Response
from pydantic import BaseModel, ConfigDict, Field

from fintrack.api.deps import (
    CurrentSessionToken,
    CurrentUserId,
    DbSession,
    MailerDep,
    read_session_cookie,
)
from fintrack.core.auth import clear_auth_cookie, encode_session_token, set_auth_cookie
from fintrack.core.config import settings
from fintrack.core.rate_limiting import limiter
from fintrack.core.redirects import resolve_redirect
from fintrack.core.responses import ActionResult, DataResponse
from fintrack.core.session_tokens import (
    UPDATE_TRIGGER,
    Session,
    SessionPatch,
    SessionToken,
    SessionTokenLifecycle,
    project_session,
)
from fintrack.services import auth_actions
from fintrack.services.auth_service import AuthService
from fintrack.services.user_service import ProfileUpdate, UserService

router = APIRouter()


# ===================================================================
# Request / response models
# ===================================================================


class SignUpRequest(BaseModel):
    """Request body for POST /auth/signup."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field("", max_length=100)
    email: str = Field("", max_length=255)
    password: str = Field("", max_length=128)


class EmailRequest(BaseModel):
    """Request body for POST /auth/forgot-password and /resend-verification."""

    model_config = ConfigDict(extra="forbid")

    email: str = Field("", max_length=255)


class ResetPasswordRequest(BaseModel):
    """Request body for POST /auth/reset-password."""

    model_config = ConfigDict(extra="forbid")

    token: str = Field("", max_length=255)
    new_password: str = Field("", max_length=128)


class ChangePasswordRequest(BaseModel):
    """Request body for POST /auth/change-password."""

    model_config = ConfigDict(extra="forbid")

    old_password: str = Field("", max_length=128)
    new_password: str = Field("", max_length=128)


class VerifyEmailRequest(BaseModel):
    """Request body for POST /auth/verify-email."""

    model_config = ConfigDict(extra="forbid")

    token: str = Field("", max_length=255)


class SignInRequest(BaseModel):
    """Request body for POST /auth/signin."""

    model_config = ConfigDict(extra="forbid")

    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=128)
    callback_url: str | None = Field(None, max_length=2048)


class SignInResponse(BaseModel):
    """Session established by a sign-in, plus where to send the browser."""

    session: Session
    redirect_url: str


class RedirectResponse(BaseModel):
    """Resolved redirect target."""

    url: str


def _action_response(response: Response, result: ActionResult) -> dict:
    response.status_code = result.status_code
    return result.model_dump(exclude_none=True)


def _issue_cookie(response: Response, token: SessionToken) -> SessionToken:
    encoded, signed = encode_session_token(token)
    set_auth_cookie(response, encoded, expires_at=signed.exp or 0)
    return signed


# ===================================================================
# Credential lifecycle actions
# ===================================================================


@router.post("/signup")
@limiter.limit("3/hour")
async def signup(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: SignUpRequest,
    response: Response,
    db: DbSession,
    mailer: MailerDep,
) -> dict:
    """Register with name, email and password; sends a verification email.

    Rate limit: 3 per hour per IP.
    """
    result = await auth_actions.sign_up_action(
        db, body.name, body.email, body.password, mailer=mailer
    )
    if result.is_success:
        result.status_code = 201
    return _action_response(response, result)


@router.post("/forgot-password")
@limiter.limit("5/hour")
async def forgot_password(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: EmailRequest,
    response: Response,
    db: DbSession,
    mailer: MailerDep,
) -> dict:
    """Request a password reset link.

    Security: succeeds identically for unknown emails.

    Rate limit: 5 per hour per IP.
    """
    result = await auth_actions.forgot_password_action(db, body.email, mailer=mailer)
    return _action_response(response, result)


@router.post("/reset-password")
@limiter.limit("5/hour")
async def reset_password(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: ResetPasswordRequest,
    response: Response,
    db: DbSession,
) -> dict:
    """Set a new password with a reset token.

    Rate limit: 5 per hour per IP.
    """
    result = await auth_actions.reset_password_action(
        db, body.token, body.new_password
    )
    return _action_response(response, result)


@router.post("/change-password")
@limiter.limit("5/hour")
async def change_password(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: ChangePasswordRequest,
    response: Response,
    user_id: CurrentUserId,
    db: DbSession,
) -> dict:
    """Change the password of the signed-in user.

    Rate limit: 5 per hour per user.
    """
    result = await auth_actions.change_password_action(
        db, user_id, body.old_password, body.new_password
    )
    return _action_response(response, result)


@router.post("/verify-email")
@limiter.limit("10/minute")
async def verify_email(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: VerifyEmailRequest,
    response: Response,
    db: DbSession,
) -> dict:
    """Confirm an email address with a verification token.

    Rate limit: 10 per minute per IP.
    """
    result = await auth_actions.verify_email_action(db, body.token)
    return _action_response(response, result)


@router.post("/resend-verification")
@limiter.limit("10/minute")
async def resend_verification(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: EmailRequest,
    response: Response,
    db: DbSession,
    mailer: MailerDep,
) -> dict:
    """Send a new verification link to an unverified account.

    Rate limit: 10 per minute per IP.
    """
    result = await auth_actions.resend_verification_action(
        db, body.email, mailer=mailer
    )
    return _action_response(response, result)


# ===================================================================
# Session
# ===================================================================


@router.post("/signin")
@limiter.limit("5/15minute")
async def signin(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: SignInRequest,
    response: Response,
    db: DbSession,
    mailer: MailerDep,
) -> DataResponse[SignInResponse]:
    """Sign in with email + password and set the session cookie.

    Admission policy applies: unverified accounts older than the grace
    period are rejected and no cookie is set.

    Rate limit: 5 per 15 minutes per IP.
    """
    user = await AuthService(db, mailer).sign_in_with_credentials(
        body.email, body.password
    )

    lifecycle = SessionTokenLifecycle(db)
    token = await lifecycle.process(SessionToken(), user=user)
    token = _issue_cookie(response, token)

    return DataResponse(
        data=SignInResponse(
            session=project_session(None, token),
            redirect_url=resolve_redirect(body.callback_url, settings.app_base_url),
        )
    )


@router.get("/session")
async def get_session(token: CurrentSessionToken) -> DataResponse[Session]:
    """Return the current session view."""
    return DataResponse(data=project_session(None, token))


@router.post("/session")
async def update_session(
    body: SessionPatch,
    response: Response,
    token: CurrentSessionToken,
    _user_id: CurrentUserId,
    db: DbSession,
    mailer: MailerDep,
) -> DataResponse[Session]:
    """Push profile changes into the user record and the active session.

    A store failure leaves both the record and the session unchanged. A
    new email address is unverified until its emailed link is used.
    """
    lifecycle = SessionTokenLifecycle(db)
    updated = await lifecycle.process(
        token, trigger=UPDATE_TRIGGER, session_patch=body
    )
    await db.commit()
    if updated.email and updated.email != (token.email or "").lower():
        await AuthService(db, mailer).resend_verification(updated.email)
    if updated is not token:
        updated = _issue_cookie(response, updated)
    return DataResponse(data=project_session(None, updated))


@router.patch("/profile")
async def update_profile(
    body: ProfileUpdate,
    response: Response,
    token: CurrentSessionToken,
    user_id: CurrentUserId,
    db: DbSession,
    mailer: MailerDep,
) -> DataResponse[Session]:
    """Validate and save profile fields, then refresh the session cookie."""
    user = await UserService(db, mailer).update_profile(user_id, body)

    patch = SessionPatch.model_construct(
        name=user.name,
        email=user.email,
        image=user.image,
        phone=user.phone,
        language=user.language,
        country=user.country,
    )
    lifecycle = SessionTokenLifecycle(db)
    updated = await lifecycle.apply_update(token, patch, persist=False)
    updated = _issue_cookie(response, updated)
    return DataResponse(data=project_session(None, updated))


@router.post("/signout")
async def signout(request: Request, response: Response, db: DbSession) -> dict:
    """Clear the session cookie and record a sign-out event.

    Works without a valid session so a stale cookie can always be cleared.
    """
    token = read_session_cookie(request)
    if token is not None:
        await AuthService(db).sign_out(token.email)
    clear_auth_cookie(response)
    return ActionResult.ok().model_dump(exclude_none=True)


@router.get("/redirect")
async def redirect(
    url: str = Query("", max_length=2048),
) -> DataResponse[RedirectResponse]:
    """Resolve a post-auth redirect target against the app origin."""
    return DataResponse(
        data=RedirectResponse(url=resolve_redirect(url, settings.app_base_url))
    )
