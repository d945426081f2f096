"""Profile update service.

Validates and persists the editable profile fields of a user. The HTTP
layer pushes the result into the active session afterwards.
"""

import logging
import re
import uuid
from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from fintrack.core.email import Mailer, ResendMailer, build_verification_email
from fintrack.core.errors import ConflictError, UserNotFoundError, ValidationError
from fintrack.core.passwords import is_valid_email
from fintrack.core.tokens import TokenIssuer, TokenKind
from fintrack.models.user import User
from fintrack.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)

SUPPORTED_COUNTRIES: frozenset[str] = frozenset({"US", "IT", "GB", "DE", "FR"})
SUPPORTED_LANGUAGES: frozenset[str] = frozenset({"en", "it", "fr", "de", "es"})

_MIN_NAME_LENGTH = 2
_MIN_AGE_YEARS = 13
_PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{1,14}$")
_PHONE_SEPARATORS = re.compile(r"[\s\-()]")


class ProfileSettings(BaseModel):
    """User preference flags stored in the settings blob."""

    model_config = ConfigDict(extra="forbid")

    two_factor_enabled: bool = False
    notifications: bool = True
    marketing_email: bool = False


class ProfileUpdate(BaseModel):
    """Editable profile fields. Omitted (None) fields are left unchanged."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(None, max_length=255)
    email: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=20)
    date_of_birth: str | None = Field(None, max_length=10)
    country: str | None = Field(None, max_length=2)
    language: str | None = Field(None, max_length=10)
    settings: ProfileSettings | None = None


def _age_on(born: date, today: date) -> int:
    had_birthday = (today.month, today.day) >= (born.month, born.day)
    return today.year - born.year - (0 if had_birthday else 1)


def validate_profile(
    data: ProfileUpdate, *, today: date | None = None
) -> dict[str, Any]:
    """Validate a profile update and return the normalized changes.

    Blank optional fields (phone, date of birth, country, language) are
    ignored rather than cleared.

    Args:
        data: Requested changes.
        today: Date override for age checks.

    Returns:
        Mapping of user column name to new value.

    Raises:
        ValidationError: On the first invalid field.
    """
    changes: dict[str, Any] = {}

    if data.name is not None:
        name = data.name.strip()
        if not name:
            raise ValidationError("Name cannot be empty")
        if len(name) < _MIN_NAME_LENGTH:
            raise ValidationError(
                f"Name must be at least {_MIN_NAME_LENGTH} characters"
            )
        changes["name"] = name

    if data.email is not None:
        email = data.email.strip()
        if not email:
            raise ValidationError("Email cannot be empty")
        if not is_valid_email(email):
            raise ValidationError("Invalid email format")
        changes["email"] = email.lower()

    if data.phone is not None and data.phone.strip():
        phone = data.phone.strip()
        if not _PHONE_PATTERN.match(_PHONE_SEPARATORS.sub("", phone)):
            raise ValidationError("Invalid phone number format")
        changes["phone"] = phone

    if data.date_of_birth is not None and data.date_of_birth.strip():
        try:
            born = date.fromisoformat(data.date_of_birth.strip())
        except ValueError as exc:
            raise ValidationError("Invalid date of birth") from exc
        today = today or date.today()
        if born > today:
            raise ValidationError("Date of birth cannot be in the future")
        if _age_on(born, today) < _MIN_AGE_YEARS:
            raise ValidationError(
                f"You must be at least {_MIN_AGE_YEARS} years old to use this app"
            )
        changes["date_of_birth"] = born

    if data.country is not None and data.country.strip():
        country = data.country.strip().upper()
        if country not in SUPPORTED_COUNTRIES:
            raise ValidationError(f"Unsupported country: {country}")
        changes["country"] = country

    if data.language is not None and data.language.strip():
        language = data.language.strip().lower()
        if language not in SUPPORTED_LANGUAGES:
            raise ValidationError(f"Unsupported language: {language}")
        changes["language"] = language

    if data.settings is not None:
        changes["settings"] = data.settings.model_dump()

    return changes


class UserService:
    """Profile operations for one user.

    Args:
        db: Async database session.
        mailer: Delivers the verification link after an email change.
    """

    def __init__(self, db: AsyncSession, mailer: Mailer | None = None) -> None:
        self._db = db
        self._mailer = mailer or ResendMailer()

    async def update_profile(
        self,
        user_id: uuid.UUID,
        data: ProfileUpdate,
        *,
        today: date | None = None,
    ) -> User:
        """Validate and persist a profile update.

        Changing the email clears its verification and mails a fresh
        verification link to the new address.

        Args:
            user_id: UUID of the user to update.
            data: Requested changes.
            today: Date override for age checks.

        Returns:
            The updated user.

        Raises:
            ValidationError: Invalid field value.
            ConflictError: EMAIL_TAKEN if another user owns the email.
            UserNotFoundError: No such user.
            EmailDeliveryError: Verification email could not be sent.
        """
        changes = validate_profile(data, today=today)

        if "email" in changes:
            existing = await UserRepository.get_by_email(self._db, changes["email"])
            if existing is not None and existing.id != user_id:
                raise ConflictError(
                    code="EMAIL_TAKEN",
                    message="This email is already used by another user",
                )

        user = await UserRepository.get_by_id(self._db, user_id)
        if user is None:
            raise UserNotFoundError()

        email_changed = changes.get("email", user.email) != user.email
        if email_changed:
            changes["email_verified"] = None

        if changes:
            user = await UserRepository.update(self._db, user_id, **changes)
            if user is None:
                raise UserNotFoundError()

        if email_changed:
            issued = await TokenIssuer(self._db).issue(user.email, TokenKind.VERIFY)
            subject, body = build_verification_email(issued.token)
            await self._mailer.send(user.email, subject, body)

        await self._db.commit()
        logger.info("Profile updated", extra={"user_id": str(user_id)})
        return user
