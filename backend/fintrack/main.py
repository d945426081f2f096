"""ASGI app for the Fintrack auth service.

``uvicorn fintrack.main:app`` serves the module-level app built by
create_app().
"""

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from fintrack.api.v1.router import router as v1_router
from fintrack.core.config import settings
from fintrack.core.errors import APIError
from fintrack.core.logging import configure_logging
from fintrack.core.rate_limiting import limiter, rate_limit_exceeded_handler
from fintrack.core.responses import ErrorDetail, ErrorResponse

logger = structlog.get_logger()

_STATIC_SECURITY_HEADERS: dict[str, str] = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Stamps hardening headers on every response.

    API responses also get ``Cache-Control: no-store`` since they carry
    session data, and production adds HSTS.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)

        response.headers.update(_STATIC_SECURITY_HEADERS)
        if request.url.path.startswith("/api/"):
            response.headers["Cache-Control"] = "no-store, max-age=0"
        # TLS terminates at the proxy in production
        if settings.environment == "production":
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        return response


def _error_response(
    status_code: int, code: str, message: str, details: list[dict] | None = None
) -> JSONResponse:
    envelope = ErrorResponse(
        error=ErrorDetail(code=code, message=message, details=details)
    )
    return JSONResponse(status_code=status_code, content=envelope.model_dump())


def api_error_handler(_request: Request, exc: APIError) -> JSONResponse:
    """Render an APIError with its own code and status."""
    return _error_response(exc.status_code, exc.code, exc.message, exc.details)


def validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report request-body validation failures as 400 VALIDATION_ERROR."""
    details = [
        {"loc": list(e["loc"]), "msg": e["msg"], "type": e["type"]}
        for e in exc.errors()
    ]
    return _error_response(
        400, "VALIDATION_ERROR", "Request validation failed", details
    )


def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log an unhandled exception and answer with a bare 500."""
    logger.exception("Unhandled exception", exc_info=exc, path=str(request.url.path))
    return _error_response(500, "INTERNAL_ERROR", "An unexpected error occurred")


def create_app() -> FastAPI:
    """Build the auth API: logging, middleware, error handlers and routes."""
    configure_logging(
        settings.log_level, json_output=settings.environment == "production"
    )

    app = FastAPI(
        title="Fintrack Auth API",
        version="1.0.0",
        description="Authentication and session service for Fintrack",
    )

    # Added last so CORS wraps everything and answers preflights itself
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", "X-Request-ID"],
    )

    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, internal_error_handler)
    app.state.limiter = limiter

    app.include_router(v1_router, prefix="/api/v1")

    @app.get("/health")
    def health_check() -> dict:
        """Liveness check for the load balancer."""
        return {"status": "healthy"}

    return app


app = create_app()
