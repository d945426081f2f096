"""Verification token model - email verification and password reset.

Single-use, time-limited. Only the SHA-256 digest of the raw token is
stored; the digest is the primary key.
"""

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from fintrack.models.base import Base


class VerificationToken(Base):
    """Email verification or password reset token.

    Rows are never mutated: created on issue, deleted on consume.

    Attributes:
        token: Hex SHA-256 digest of the raw token value.
        identifier: Email address the token is bound to.
        expires: Token expiry timestamp.
    """

    __tablename__ = "verification_tokens"

    token: Mapped[str] = mapped_column(String(64), primary_key=True)
    identifier: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )
    expires: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
