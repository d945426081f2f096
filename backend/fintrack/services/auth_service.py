"""Credential and sign-in use cases.

Composes validation, password hashing, the token issuer, admission policy,
account linking and the mailer. Every method raises a typed APIError on
failure; fintrack.services.auth_actions turns those into ActionResults.

Transactions: each use case commits only after its last side effect
(including email delivery) succeeded. On failure nothing is committed and
the caller rolls the session back, which also restores any consumed token.
"""

import logging
import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fintrack.core import auth_events
from fintrack.core.account_linking import (
    ProviderIdentity,
    find_or_create_user_for_provider,
)
from fintrack.core.admission import CREDENTIALS_PROVIDER, SignInAccount, admit
from fintrack.core.email import (
    Mailer,
    ResendMailer,
    build_password_reset_email,
    build_verification_email,
)
from fintrack.core.errors import (
    AccountNotActiveError,
    AdmissionDeniedError,
    DuplicateEmailError,
    IncorrectPasswordError,
    TokenExpiredError,
    TokenInvalidOrExpiredError,
    TokenNotFoundError,
    UnauthorizedError,
    UserNotFoundError,
    ValidationError,
)
from fintrack.core.passwords import (
    burn_dummy_check,
    hash_password,
    validate_email_format,
    validate_name,
    validate_password_strength,
    verify_password,
)
from fintrack.core.timeutils import utcnow
from fintrack.core.tokens import IssuedToken, TokenIssuer, TokenKind
from fintrack.models.user import User, UserStatus
from fintrack.repositories.user_repository import UserRepository

_default_logger = logging.getLogger(__name__)

_INVALID_CREDENTIALS_MSG = "Invalid credentials"


class AuthService:
    """Authentication use cases bound to one database session.

    Args:
        db: Async database session.
        mailer: Outbound mail transport. Defaults to ResendMailer.
        logger: Sink for admission denials. Defaults to the module logger.
    """

    def __init__(
        self,
        db: AsyncSession,
        mailer: Mailer | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._db = db
        self._mailer = mailer or ResendMailer()
        self._logger = logger or _default_logger
        self._tokens = TokenIssuer(db)

    # -----------------------------------------------------------------------
    # Registration and recovery
    # -----------------------------------------------------------------------

    async def sign_up(self, name: str, email: str, password: str) -> User:
        """Register a credentials user and send a verification email.

        Args:
            name: Display name (>= 2 chars after trimming).
            email: Email address.
            password: Plain-text password meeting the complexity rule.

        Returns:
            The created user.

        Raises:
            ValidationError: Bad input, before any store access.
            DuplicateEmailError: Email already registered.
            EmailDeliveryError: Verification email could not be sent.
        """
        name = validate_name(name)
        email = validate_email_format(email)
        validate_password_strength(password)

        if await UserRepository.get_by_email(self._db, email):
            raise DuplicateEmailError()

        try:
            user = await UserRepository.create(
                self._db,
                email=email,
                name=name,
                password_hash=hash_password(password),
            )
        except IntegrityError as exc:
            # Lost a race with a concurrent sign-up for the same email
            await self._db.rollback()
            raise DuplicateEmailError() from exc

        await auth_events.record_create_user(self._db, email=user.email)
        await self._send_verification(user.email)
        await self._db.commit()
        return user

    async def forgot_password(self, email: str) -> None:
        """Send a password reset link if the account exists.

        Succeeds identically whether or not the email is registered, so the
        response never reveals which addresses have accounts.

        Raises:
            ValidationError: Missing or malformed email.
            EmailDeliveryError: Reset email could not be sent.
        """
        email = validate_email_format(email)

        user = await UserRepository.get_by_email(self._db, email)
        if user is not None:
            issued = await self._tokens.issue(user.email, TokenKind.RESET)
            subject, body = build_password_reset_email(issued.token)
            await self._mailer.send(user.email, subject, body)
            await self._db.commit()

    async def reset_password(self, token: str, new_password: str) -> None:
        """Set a new password using a reset token.

        Raises:
            ValidationError: Missing token or weak password.
            TokenInvalidOrExpiredError: Token malformed, unknown, used or expired.
            UserNotFoundError: The bound account no longer exists.
        """
        if not token or not token.strip():
            raise ValidationError("Token is required")
        validate_password_strength(new_password)

        if TokenKind.from_token(token) is not TokenKind.RESET:
            raise TokenInvalidOrExpiredError("Invalid token")

        issued = await self._consume(token)

        user = await UserRepository.get_by_email(self._db, issued.identifier)
        if user is None:
            raise UserNotFoundError()

        await UserRepository.update(
            self._db, user.id, password_hash=hash_password(new_password)
        )
        await self._db.commit()

    async def change_password(
        self,
        user_id: uuid.UUID | str,
        old_password: str,
        new_password: str,
    ) -> None:
        """Change the password of an authenticated user.

        Raises:
            ValidationError: Missing fields, new == old, or weak password.
            UserNotFoundError: No such user.
            IncorrectPasswordError: old_password does not verify.
        """
        if not user_id or not str(user_id).strip():
            raise ValidationError("User ID is required")
        if not old_password:
            raise ValidationError("Current password is required")
        if not new_password:
            raise ValidationError("New password is required")
        if old_password == new_password:
            raise ValidationError(
                "New password must be different from the current password"
            )
        validate_password_strength(new_password)

        try:
            uid = user_id if isinstance(user_id, uuid.UUID) else uuid.UUID(user_id)
        except ValueError as exc:
            raise UserNotFoundError() from exc

        row = await UserRepository.get_fields(self._db, uid, ("id", "password_hash"))
        if row is None:
            raise UserNotFoundError()

        if not verify_password(old_password, row["password_hash"] or ""):
            raise IncorrectPasswordError()

        await UserRepository.update(
            self._db, uid, password_hash=hash_password(new_password)
        )
        await self._db.commit()

    async def verify_email(self, token: str) -> User:
        """Mark the bound user's email as verified.

        Raises:
            ValidationError: Missing token.
            TokenInvalidOrExpiredError: Reset token, unknown, used or expired.
            UserNotFoundError: The bound account no longer exists.
        """
        if not token or not token.strip():
            raise ValidationError("Token is required")
        if TokenKind.from_token(token) is not TokenKind.VERIFY:
            raise TokenInvalidOrExpiredError()

        issued = await self._consume(token)

        user = await UserRepository.get_by_email(self._db, issued.identifier)
        if user is None:
            raise UserNotFoundError()

        if user.email_verified is None:
            await UserRepository.update(self._db, user.id, email_verified=utcnow())
        await self._db.commit()
        return user

    async def resend_verification(self, email: str) -> None:
        """Send a fresh verification link to an unverified account.

        Like forgot_password, the outcome does not reveal whether the
        account exists or is already verified.

        Raises:
            ValidationError: Missing or malformed email.
            EmailDeliveryError: Verification email could not be sent.
        """
        email = validate_email_format(email)

        user = await UserRepository.get_by_email(self._db, email)
        if user is not None and user.email_verified is None:
            await self._send_verification(user.email)
            await self._db.commit()

    # -----------------------------------------------------------------------
    # Sign-in
    # -----------------------------------------------------------------------

    async def authenticate_credentials(self, email: str, password: str) -> User:
        """Check an email + password pair (the credentials provider).

        Security: always performs one bcrypt comparison so response time
        does not reveal whether the email exists. The password is checked
        before the account status, so status is only disclosed to callers
        who know the password.

        Returns:
            The authenticated user, with last_login stamped.

        Raises:
            ValidationError: Email or password missing.
            UnauthorizedError: Unknown email, no password set, or wrong password.
            AccountNotActiveError: Status is INACTIVE or BANNED.
        """
        if not email or not password:
            raise ValidationError("Email and password are required")

        user = await UserRepository.get_by_email(self._db, email)
        if user is None or not user.password_hash:
            burn_dummy_check(password)
            raise UnauthorizedError(_INVALID_CREDENTIALS_MSG)

        if not verify_password(password, user.password_hash):
            raise UnauthorizedError(_INVALID_CREDENTIALS_MSG)

        if user.status != UserStatus.ACTIVE:
            raise AccountNotActiveError(user.status)

        await UserRepository.update(self._db, user.id, last_login=utcnow())
        return user

    async def sign_in_with_credentials(self, email: str, password: str) -> User:
        """Authenticate with a password and apply the admission policy.

        Raises:
            AdmissionDeniedError: Unverified account past the grace period.
            (and everything authenticate_credentials raises)
        """
        user = await self.authenticate_credentials(email, password)
        if not admit(user, SignInAccount(CREDENTIALS_PROVIDER), logger=self._logger):
            raise AdmissionDeniedError()

        await auth_events.record_sign_in(
            self._db, email=user.email, provider=CREDENTIALS_PROVIDER
        )
        await self._db.commit()
        return user

    async def sign_in_with_provider(self, identity: ProviderIdentity) -> User:
        """Resolve a provider-confirmed identity and apply the admission policy.

        Creating or linking the user happens in the same transaction as the
        admission decision, so a denied sign-in leaves nothing behind.

        Raises:
            ValidationError: "credentials" passed as an external provider.
            AccountLinkingBlockedError: Unsafe link to an existing email.
            AccountNotActiveError: Status is INACTIVE or BANNED.
            AdmissionDeniedError: Email not verified.
        """
        if identity.provider == CREDENTIALS_PROVIDER:
            raise ValidationError("Use credentials sign-in for password accounts")

        result = await find_or_create_user_for_provider(db=self._db, identity=identity)
        user = result.user

        if result.created:
            await auth_events.record_create_user(self._db, email=user.email)
        if result.linked:
            await auth_events.record_link_account(
                self._db, email=user.email, provider=identity.provider
            )

        if user.status != UserStatus.ACTIVE:
            raise AccountNotActiveError(user.status)

        account = SignInAccount(identity.provider, identity.provider_account_id)
        if not admit(user, account, logger=self._logger):
            raise AdmissionDeniedError()

        await auth_events.record_sign_in(
            self._db, email=user.email, provider=identity.provider
        )
        await self._db.commit()
        return user

    async def sign_out(self, email: str | None) -> None:
        """Record a sign-out event."""
        await auth_events.record_sign_out(self._db, email=email)
        await self._db.commit()

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    async def _send_verification(self, email: str) -> IssuedToken:
        issued = await self._tokens.issue(email, TokenKind.VERIFY)
        subject, body = build_verification_email(issued.token)
        await self._mailer.send(email, subject, body)
        return issued

    async def _consume(self, token: str) -> IssuedToken:
        """Consume a token, collapsing not-found and expired into one error."""
        try:
            return await self._tokens.consume(token)
        except (TokenNotFoundError, TokenExpiredError) as exc:
            raise TokenInvalidOrExpiredError() from exc
