"""Sign-in admission policy.

Decides, after upstream authentication has already succeeded, whether the
sign-in may proceed to session issuance. The only side effect is logging.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol

from fintrack.core.config import settings
from fintrack.core.timeutils import as_utc, utcnow

_default_logger = logging.getLogger(__name__)

CREDENTIALS_PROVIDER = "credentials"


class AdmissionSubject(Protocol):
    """The user fields admission reads."""

    email: str | None
    email_verified: datetime | None
    created_at: datetime | None


@dataclass(frozen=True)
class SignInAccount:
    """The provider side of a sign-in attempt.

    Attributes:
        provider: "credentials" or an external provider name.
        provider_account_id: Provider's user id, when known.
    """

    provider: str
    provider_account_id: str | None = None


def admit(
    user: AdmissionSubject,
    account: SignInAccount | None,
    *,
    now: datetime | None = None,
    logger: logging.Logger | None = None,
) -> bool:
    """Decide whether an authenticated user may sign in.

    Credentials sign-ins are admitted when the email is verified or the
    account is still inside the unverified grace period (30 days). An
    unknown creation time is admitted. External-provider sign-ins are
    admitted only with a verified email.

    Args:
        user: The authenticated user.
        account: Provider information for this attempt.
        now: Current time override.
        logger: Sink for denial reasons. Defaults to the module logger.

    Returns:
        True to admit, False to reject the attempt entirely.
    """
    log = logger or _default_logger
    provider = account.provider if account is not None else None

    if provider != CREDENTIALS_PROVIDER:
        if user.email and user.email_verified is None:
            log.warning(
                "Sign-in denied: %s has not verified their email with provider %s.",
                user.email,
                provider,
            )
            return False
        return True

    if user.email and user.email_verified is None and user.created_at is not None:
        grace = timedelta(days=settings.unverified_grace_period_days)
        age = (now or utcnow()) - as_utc(user.created_at)
        if age > grace:
            log.warning(
                "Sign-in denied: %s has not verified their email within "
                "%d days of registration.",
                user.email,
                settings.unverified_grace_period_days,
            )
            return False
    return True
