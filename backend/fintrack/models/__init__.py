"""SQLAlchemy ORM models for Fintrack.

All models are exported from this module for convenient imports:
    from fintrack.models import User, Account, ...

- user.py: User, UserRole, UserStatus
- account.py: Account (identity provider connections)
- verification_token.py: VerificationToken (hashed single-use tokens)
- auth_event.py: AuthEvent (auth audit trail)
"""

from fintrack.models.account import Account
from fintrack.models.auth_event import AuthEvent, AuthEventType
from fintrack.models.base import Base, TimestampMixin
from fintrack.models.user import User, UserRole, UserStatus
from fintrack.models.verification_token import VerificationToken

__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    # Users
    "User",
    "UserRole",
    "UserStatus",
    # Auth
    "Account",
    "VerificationToken",
    "AuthEvent",
    "AuthEventType",
]
