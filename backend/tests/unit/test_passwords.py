"""Tests for password hashing and credential input validation."""

import bcrypt
import pytest

from fintrack.core.errors import ValidationError
from fintrack.core.passwords import (
    DUMMY_HASH,
    PASSWORD_COMPLEXITY_MSG,
    burn_dummy_check,
    hash_password,
    is_valid_email,
    validate_email_format,
    validate_name,
    validate_password_strength,
    verify_password,
)

_PASSWORD = "Password123"  # nosec B105


class TestHashPassword:
    """Tests for hash_password() / verify_password()."""

    def test_hash_verifies_against_original(self):
        hashed = hash_password(_PASSWORD)
        assert verify_password(_PASSWORD, hashed) is True

    def test_wrong_password_does_not_verify(self):
        hashed = hash_password(_PASSWORD)
        assert verify_password("Password124", hashed) is False

    def test_same_password_hashes_differently(self):
        """Each hash draws a fresh salt."""
        first = hash_password(_PASSWORD)
        second = hash_password(_PASSWORD)
        assert first != second
        assert verify_password(_PASSWORD, first)
        assert verify_password(_PASSWORD, second)

    def test_uses_configured_cost_factor(self):
        hashed = hash_password(_PASSWORD)
        assert hashed.startswith("$2b$04$")

    def test_explicit_rounds_override_settings(self):
        hashed = hash_password(_PASSWORD, rounds=5)
        assert hashed.startswith("$2b$05$")

    def test_hash_is_bcrypt_compatible(self):
        hashed = hash_password(_PASSWORD)
        assert bcrypt.checkpw(_PASSWORD.encode(), hashed.encode())

    def test_accepts_bytes_hash(self):
        hashed = hash_password(_PASSWORD).encode()
        assert verify_password(_PASSWORD, hashed) is True

    @pytest.mark.parametrize("stored", ["", None])
    def test_empty_hash_never_verifies(self, stored):
        assert verify_password(_PASSWORD, stored) is False

    def test_malformed_hash_returns_false(self):
        assert verify_password(_PASSWORD, "not-a-bcrypt-hash") is False

    def test_long_password_is_truncated_to_72_bytes(self):
        """bcrypt only reads 72 bytes; longer input must not raise."""
        long_password = "Aa1" + "x" * 100
        hashed = hash_password(long_password)
        assert verify_password(long_password, hashed) is True
        assert verify_password(long_password[:72], hashed) is True


class TestDummyHash:
    """Tests for the timing-equalization helpers."""

    def test_dummy_hash_is_valid_bcrypt(self):
        assert DUMMY_HASH.startswith(b"$2b$12$")
        assert verify_password("anything", DUMMY_HASH) is False

    def test_burn_dummy_check_returns_none(self):
        assert burn_dummy_check(_PASSWORD) is None


class TestEmailFormat:
    """Tests for is_valid_email() / validate_email_format()."""

    @pytest.mark.parametrize(
        "email",
        ["user@example.com", "a.b+tag@sub.example.co", "  user@example.com  "],
    )
    def test_valid_emails(self, email):
        assert is_valid_email(email) is True

    @pytest.mark.parametrize(
        "email",
        ["user", "user@", "@example.com", "user@example", "us er@example.com"],
    )
    def test_invalid_emails(self, email):
        assert is_valid_email(email) is False

    def test_validate_returns_trimmed_lowercase(self):
        assert validate_email_format("  User@Example.COM ") == "user@example.com"

    @pytest.mark.parametrize("email", ["", "   ", None])
    def test_missing_email(self, email):
        with pytest.raises(ValidationError, match="Email is required"):
            validate_email_format(email)

    def test_malformed_email(self):
        with pytest.raises(ValidationError, match="Invalid email format"):
            validate_email_format("not-an-email")


class TestValidateName:
    """Tests for validate_name()."""

    def test_returns_trimmed_name(self):
        assert validate_name("  Jane Doe ") == "Jane Doe"

    @pytest.mark.parametrize("name", ["", "   ", None])
    def test_missing_name(self, name):
        with pytest.raises(ValidationError, match="Name is required"):
            validate_name(name)

    def test_single_character_rejected(self):
        with pytest.raises(ValidationError, match="at least 2 characters"):
            validate_name(" J ")

    def test_too_long_rejected(self):
        with pytest.raises(ValidationError, match="at most 100 characters"):
            validate_name("J" * 101)


class TestValidatePasswordStrength:
    """Tests for validate_password_strength()."""

    def test_valid_password_passes(self):
        validate_password_strength(_PASSWORD)

    def test_missing_password(self):
        with pytest.raises(ValidationError, match="Password is required"):
            validate_password_strength("")

    def test_too_short(self):
        with pytest.raises(ValidationError, match="at least 8 characters"):
            validate_password_strength("Pass1")

    def test_too_long(self):
        with pytest.raises(ValidationError, match="at most 128 characters"):
            validate_password_strength("Aa1" + "x" * 126)

    @pytest.mark.parametrize(
        "password",
        ["password123", "PASSWORD123", "Passwordabc"],
    )
    def test_missing_character_class(self, password):
        with pytest.raises(ValidationError) as exc_info:
            validate_password_strength(password)
        assert exc_info.value.message == PASSWORD_COMPLEXITY_MSG

    def test_error_code_is_validation_error(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_password_strength("short")
        assert exc_info.value.code == "VALIDATION_ERROR"
        assert exc_info.value.status_code == 400
