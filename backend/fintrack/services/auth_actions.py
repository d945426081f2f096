"""Auth entry points that never raise.

Each action runs one AuthService use case and reports the outcome as an
ActionResult: ``{"success": true}`` or ``{"error": "<user-safe message>"}``.
Typed errors surface their own message; anything unexpected is logged with
a stack trace and reported with a generic message. The session is rolled
back on every failure.
"""

import logging
import uuid
from collections.abc import Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from fintrack.core.email import Mailer
from fintrack.core.errors import APIError
from fintrack.core.responses import ActionResult
from fintrack.services.auth_service import AuthService

_default_logger = logging.getLogger(__name__)


async def run_action(
    db: AsyncSession,
    operation: Callable[[], Awaitable[object]],
    *,
    failure_message: str,
    logger: logging.Logger | None = None,
) -> ActionResult:
    """Run an operation and convert its outcome into an ActionResult.

    Args:
        db: Session to roll back on failure.
        operation: Zero-argument coroutine factory.
        failure_message: Message reported for unexpected errors.
        logger: Sink for unexpected errors. Defaults to the module logger.

    Returns:
        ActionResult describing the outcome.
    """
    log = logger or _default_logger
    try:
        await operation()
    except APIError as exc:
        await db.rollback()
        return ActionResult.failure(
            exc.message, code=exc.code, status_code=exc.status_code
        )
    except Exception:
        await db.rollback()
        log.exception(failure_message)
        return ActionResult.failure(
            failure_message, code="INTERNAL_ERROR", status_code=500
        )
    return ActionResult.ok()


async def sign_up_action(
    db: AsyncSession,
    name: str,
    email: str,
    password: str,
    *,
    mailer: Mailer | None = None,
) -> ActionResult:
    service = AuthService(db, mailer)
    return await run_action(
        db,
        lambda: service.sign_up(name, email, password),
        failure_message="Error during registration",
    )


async def forgot_password_action(
    db: AsyncSession,
    email: str,
    *,
    mailer: Mailer | None = None,
) -> ActionResult:
    service = AuthService(db, mailer)
    return await run_action(
        db,
        lambda: service.forgot_password(email),
        failure_message="Error sending the password reset email",
    )


async def reset_password_action(
    db: AsyncSession,
    token: str,
    new_password: str,
) -> ActionResult:
    service = AuthService(db)
    return await run_action(
        db,
        lambda: service.reset_password(token, new_password),
        failure_message="Error resetting the password",
    )


async def change_password_action(
    db: AsyncSession,
    user_id: uuid.UUID | str,
    old_password: str,
    new_password: str,
) -> ActionResult:
    service = AuthService(db)
    return await run_action(
        db,
        lambda: service.change_password(user_id, old_password, new_password),
        failure_message="Error changing the password",
    )


async def verify_email_action(db: AsyncSession, token: str) -> ActionResult:
    service = AuthService(db)
    return await run_action(
        db,
        lambda: service.verify_email(token),
        failure_message="Error verifying the email address",
    )


async def resend_verification_action(
    db: AsyncSession,
    email: str,
    *,
    mailer: Mailer | None = None,
) -> ActionResult:
    service = AuthService(db, mailer)
    return await run_action(
        db,
        lambda: service.resend_verification(email),
        failure_message="Error sending the verification email",
    )
