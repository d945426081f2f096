"""API error classes.

Every error the auth core raises is an APIError so exception handlers and
the action wrappers can turn it into a status code and a user-safe message.
"""


class APIError(Exception):
    """Base class for API errors.

    All API errors have a code, message, and HTTP status.
    Subclasses set default status_code.

    Attributes:
        code: Machine-readable error code (e.g., "NOT_FOUND").
        message: Human-readable error message.
        status_code: HTTP status code to return.
        details: Optional list of additional error details.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: list[dict] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationError(APIError):
    """Field validation failed (400).

    Raised before any store access is attempted.
    """

    def __init__(
        self,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=400,
            details=details,
        )


class UnauthorizedError(APIError):
    """Authentication required (401).

    Use when no valid auth credentials provided.
    """

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(
            code="UNAUTHORIZED",
            message=message,
            status_code=401,
        )


class ForbiddenError(APIError):
    """Not allowed to access resource (403).

    Use when auth is valid but user lacks permission.
    """

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(
            code="FORBIDDEN",
            message=message,
            status_code=403,
        )


class NotFoundError(APIError):
    """Resource not found (404)."""

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        if resource_id:
            message = f"{resource} with id '{resource_id}' not found"
        else:
            message = f"{resource} not found"
        super().__init__(
            code="NOT_FOUND",
            message=message,
            status_code=404,
        )


class ConflictError(APIError):
    """Duplicate or conflicting resource (409).

    Accepts custom code for specific conflict types.
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details,
        )


class InternalError(APIError):
    """Unexpected server error (500).

    Use for unhandled exceptions. Never expose stack traces to clients.
    """

    def __init__(self, message: str = "An unexpected error occurred") -> None:
        super().__init__(
            code="INTERNAL_ERROR",
            message=message,
            status_code=500,
        )


# ===================================================================
# Credential and session lifecycle errors
# ===================================================================


class DuplicateEmailError(ConflictError):
    """A user with this email already exists (409)."""

    def __init__(self, message: str = "A user with this email already exists") -> None:
        super().__init__(code="DUPLICATE_EMAIL", message=message)


class UserNotFoundError(APIError):
    """The user bound to a token or session no longer exists (404)."""

    def __init__(self, message: str = "User not found") -> None:
        super().__init__(code="USER_NOT_FOUND", message=message, status_code=404)


class IncorrectPasswordError(APIError):
    """The current password supplied for a change did not verify (400)."""

    def __init__(self, message: str = "Current password is incorrect") -> None:
        super().__init__(code="INCORRECT_PASSWORD", message=message, status_code=400)


class TokenNotFoundError(APIError):
    """No verification token matches the supplied value (400)."""

    def __init__(self, message: str = "Token not found") -> None:
        super().__init__(code="TOKEN_NOT_FOUND", message=message, status_code=400)


class TokenExpiredError(APIError):
    """The verification token exists but its expiry has passed (400)."""

    def __init__(self, message: str = "Token expired") -> None:
        super().__init__(code="TOKEN_EXPIRED", message=message, status_code=400)


class TokenInvalidOrExpiredError(APIError):
    """Collapsed token failure surfaced to clients (400).

    Hides whether the token was malformed, unknown or expired.
    """

    def __init__(self, message: str = "Invalid or expired token") -> None:
        super().__init__(
            code="TOKEN_INVALID_OR_EXPIRED", message=message, status_code=400
        )


class AccountNotActiveError(ForbiddenError):
    """Credential login attempted on an INACTIVE or BANNED account (403)."""

    def __init__(self, status: str | None) -> None:
        status_text = status.lower() if status else "compromised"
        APIError.__init__(
            self,
            code="ACCOUNT_NOT_ACTIVE",
            message=f"Account {status_text}. Contact support.",
            status_code=403,
        )


class AdmissionDeniedError(ForbiddenError):
    """The sign-in admission policy vetoed the authentication (403)."""

    def __init__(
        self,
        message: str = "Sign-in denied. Please verify your email address.",
    ) -> None:
        APIError.__init__(
            self,
            code="ADMISSION_DENIED",
            message=message,
            status_code=403,
        )


class AccountLinkingBlockedError(ConflictError):
    """Provider sign-in blocked by email verification rules (409).

    Pre-hijack defense: an account with the same email exists but one
    or both sides haven't verified the email, so linking is unsafe.
    """

    def __init__(self, message: str) -> None:
        super().__init__(code="ACCOUNT_LINKING_BLOCKED", message=message)


class EmailDeliveryError(APIError):
    """The mail provider rejected or failed to deliver a message (502)."""

    def __init__(self, message: str = "Failed to send email") -> None:
        super().__init__(code="EMAIL_DELIVERY_FAILED", message=message, status_code=502)
