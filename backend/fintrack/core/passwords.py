"""Password hashing and credential input validation.

Pipeline:
- hash_password / verify_password: bcrypt with the configured cost factor
- DUMMY_HASH: Timing-safe constant for user enumeration defense
- validate_name / validate_email_format / validate_password_strength:
  Format rules (sync, no store access)
"""

import re

import bcrypt

from fintrack.core.config import settings
from fintrack.core.errors import ValidationError

# Pre-computed bcrypt hash for timing-safe comparison on user-not-found.
DUMMY_HASH = b"$2b$12$ZP2PVB8yI35X.mkRqcUPUuSzJA1CNRt4dZ7X3cyrfJu.2S3w.Qen2"

# bcrypt only reads the first 72 bytes of its input
_BCRYPT_MAX_BYTES = 72

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

_MIN_NAME_LENGTH = 2
_MAX_NAME_LENGTH = 100
_MIN_PASSWORD_LENGTH = 8
_MAX_PASSWORD_LENGTH = 128

PASSWORD_COMPLEXITY_MSG = (  # nosec B105
    "Password must contain at least one uppercase letter, "
    "one lowercase letter and one number"
)


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int | None = None) -> str:
    """Hash a password with bcrypt.

    Each call draws a fresh salt, so hashing the same password twice
    yields different strings that both verify.

    Args:
        password: Plain-text password.
        rounds: bcrypt cost factor. Defaults to settings.bcrypt_rounds.

    Returns:
        bcrypt hash as a str.
    """
    cost = rounds if rounds is not None else settings.bcrypt_rounds
    return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=cost)).decode()


def verify_password(password: str, hashed: str | bytes | None) -> bool:
    """Check a password against a bcrypt hash.

    Never raises: a mismatch, an empty hash or a malformed hash all
    return False.

    Args:
        password: Plain-text password.
        hashed: Stored bcrypt hash.

    Returns:
        True if the password matches the hash.
    """
    if not hashed:
        return False
    hashed_bytes = hashed.encode() if isinstance(hashed, str) else hashed
    try:
        return bcrypt.checkpw(_encode(password), hashed_bytes)
    except ValueError:
        return False


def burn_dummy_check(password: str) -> None:
    """Run a bcrypt comparison against DUMMY_HASH and discard the result."""
    bcrypt.checkpw(_encode(password), DUMMY_HASH)


def is_valid_email(email: str) -> bool:
    """Return True if email has the shape local@domain.tld."""
    return bool(_EMAIL_PATTERN.match(email.strip()))


def validate_name(name: str | None) -> str:
    """Validate a display name and return it trimmed.

    Raises:
        ValidationError: If the name is missing, too short or too long.
    """
    trimmed = (name or "").strip()
    if not trimmed:
        raise ValidationError("Name is required")
    if len(trimmed) < _MIN_NAME_LENGTH:
        raise ValidationError(
            f"Name must be at least {_MIN_NAME_LENGTH} characters"
        )
    if len(trimmed) > _MAX_NAME_LENGTH:
        raise ValidationError(f"Name must be at most {_MAX_NAME_LENGTH} characters")
    return trimmed


def validate_email_format(email: str | None) -> str:
    """Validate an email address and return it trimmed and lower-cased.

    Raises:
        ValidationError: If the email is missing or malformed.
    """
    trimmed = (email or "").strip()
    if not trimmed:
        raise ValidationError("Email is required")
    if not is_valid_email(trimmed):
        raise ValidationError("Invalid email format")
    return trimmed.lower()


def validate_password_strength(password: str | None) -> None:
    """Validate password meets strength requirements.

    8-128 chars, at least one uppercase letter, one lowercase letter
    and one digit.

    Args:
        password: Plain-text password to validate.

    Raises:
        ValidationError: If password doesn't meet requirements.
    """
    if not password:
        raise ValidationError("Password is required")
    if len(password) < _MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {_MIN_PASSWORD_LENGTH} characters"
        )
    if len(password) > _MAX_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at most {_MAX_PASSWORD_LENGTH} characters"
        )
    if not (
        re.search(r"[A-Z]", password)
        and re.search(r"[a-z]", password)
        and re.search(r"\d", password)
    ):
        raise ValidationError(PASSWORD_COMPLEXITY_MSG)
