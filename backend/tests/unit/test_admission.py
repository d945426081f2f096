"""Tests for the sign-in admission policy.

Credentials sign-ins get a 30 day grace period for email verification;
external provider sign-ins require a verified email.
"""

import logging
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace

import pytest

from fintrack.core.admission import SignInAccount, admit

_NOW = datetime(2026, 5, 1, tzinfo=UTC)
_CREDENTIALS = SignInAccount("credentials")
_GOOGLE = SignInAccount("google", "google-123")


def _user(
    *,
    email: str | None = "jane@example.com",
    verified: bool = False,
    age_days: float | None = 0,
) -> SimpleNamespace:
    return SimpleNamespace(
        email=email,
        email_verified=_NOW - timedelta(days=1) if verified else None,
        created_at=None if age_days is None else _NOW - timedelta(days=age_days),
    )


class TestCredentialsProvider:
    """Credentials sign-ins: verified, or unverified within the grace period."""

    def test_verified_user_is_admitted(self):
        assert admit(_user(verified=True, age_days=400), _CREDENTIALS, now=_NOW)

    @pytest.mark.parametrize("age_days", [0, 1, 29, 30])
    def test_unverified_within_grace_is_admitted(self, age_days):
        assert admit(_user(age_days=age_days), _CREDENTIALS, now=_NOW)

    def test_unverified_past_grace_is_denied(self):
        assert admit(_user(age_days=31), _CREDENTIALS, now=_NOW) is False

    def test_just_past_grace_is_denied(self):
        assert admit(_user(age_days=30.001), _CREDENTIALS, now=_NOW) is False

    def test_unknown_creation_time_is_admitted(self):
        assert admit(_user(age_days=None), _CREDENTIALS, now=_NOW)

    def test_user_without_email_is_admitted(self):
        assert admit(_user(email=None, age_days=90), _CREDENTIALS, now=_NOW)

    def test_naive_created_at_is_treated_as_utc(self):
        user = _user()
        user.created_at = (_NOW - timedelta(days=31)).replace(tzinfo=None)
        assert admit(user, _CREDENTIALS, now=_NOW) is False

    def test_denial_is_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="fintrack.core.admission"):
            admit(_user(age_days=45), _CREDENTIALS, now=_NOW)

        assert (
            "Sign-in denied: jane@example.com has not verified their email "
            "within 30 days of registration."
        ) in caplog.text

    def test_injected_logger_receives_denial(self):
        logger = logging.getLogger("test.admission")
        records: list[logging.LogRecord] = []
        handler = logging.Handler()
        handler.emit = records.append
        logger.addHandler(handler)
        try:
            admit(_user(age_days=45), _CREDENTIALS, now=_NOW, logger=logger)
        finally:
            logger.removeHandler(handler)

        assert len(records) == 1
        assert records[0].levelno == logging.WARNING


class TestExternalProvider:
    """External provider sign-ins require a verified email."""

    def test_verified_email_is_admitted(self):
        assert admit(_user(verified=True), _GOOGLE, now=_NOW)

    def test_unverified_email_is_denied_even_when_new(self):
        assert admit(_user(age_days=0), _GOOGLE, now=_NOW) is False

    def test_user_without_email_is_admitted(self):
        assert admit(_user(email=None), _GOOGLE, now=_NOW)

    def test_missing_account_counts_as_external(self):
        assert admit(_user(age_days=0), None, now=_NOW) is False

    def test_denial_is_logged_with_provider(self, caplog):
        with caplog.at_level(logging.WARNING, logger="fintrack.core.admission"):
            admit(_user(), _GOOGLE, now=_NOW)

        assert (
            "Sign-in denied: jane@example.com has not verified their email "
            "with provider google."
        ) in caplog.text

    def test_admission_does_not_log(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="fintrack.core.admission"):
            admit(_user(verified=True), _GOOGLE, now=_NOW)
        assert caplog.records == []
