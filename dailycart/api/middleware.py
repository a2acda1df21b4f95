"""API middleware for DailyCart.

Provides:
- Request ID correlation
- Bearer token authentication
- Error handling and the domain error envelope
"""

import time
from typing import Callable
from uuid import uuid4

import structlog
from fastapi import FastAPI, HTTPException, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from dailycart.application.container import get_container
from dailycart.domain.exceptions import AuthenticationError, DomainError
from dailycart.domain.value_objects import Principal

logger = structlog.get_logger()


# ============================================================================
# Request ID Middleware
# ============================================================================


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Middleware to add request ID for correlation.

    Generates or extracts a request ID and adds it to:
    - Request state for access in handlers
    - Response headers for client correlation
    - Log context for tracing
    """

    HEADER_NAME = "X-Request-ID"

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(self.HEADER_NAME) or str(uuid4())
        request.state.request_id = request_id
        structlog.contextvars.bind_contextvars(request_id=request_id)

        start_time = time.perf_counter()
        response = None
        try:
            response = await call_next(request)
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.info(
                "Request completed",
                method=request.method,
                path=request.url.path,
                status_code=getattr(response, "status_code", 500),
                duration_ms=round(duration_ms, 2),
            )
            structlog.contextvars.unbind_contextvars("request_id")

        response.headers[self.HEADER_NAME] = request_id
        return response


# ============================================================================
# Bearer Authentication Middleware
# ============================================================================


# Paths that don't require authentication
PUBLIC_PATHS = {
    "/health",
    "/ready",
    "/docs",
    "/redoc",
    "/openapi.json",
}


class BearerAuthMiddleware(BaseHTTPMiddleware):
    """Authenticates ``Authorization: Bearer <jwt>`` on protected paths.

    The resulting principal is stored on ``request.state.principal``.
    WebSocket connections authenticate in their own endpoint.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path.rstrip("/") or "/"
        if path in PUBLIC_PATHS or path.startswith("/docs") or path.startswith("/redoc"):
            return await call_next(request)

        try:
            principal = get_container().authenticator.authenticate_header(request.headers.get("Authorization"))
        except AuthenticationError as exc:
            logger.warning("Authentication failed", path=path, method=request.method, reason=exc.message)
            return error_response(request, exc, headers={"WWW-Authenticate": "Bearer"})

        request.state.principal = principal
        structlog.contextvars.bind_contextvars(principal=str(principal))
        try:
            return await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("principal")


def get_principal(request: Request) -> Principal:
    """FastAPI dependency returning the authenticated principal."""
    principal = getattr(request.state, "principal", None)
    if principal is None:
        raise AuthenticationError("Not authenticated")
    return principal


# ============================================================================
# Error Handling
# ============================================================================


ERROR_STATUS_CODES: dict[str, int] = {
    "VALIDATION_ERROR": status.HTTP_400_BAD_REQUEST,
    "UNAUTHENTICATED": status.HTTP_401_UNAUTHORIZED,
    "FORBIDDEN": status.HTTP_403_FORBIDDEN,
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "STATE_CONFLICT": status.HTTP_409_CONFLICT,
    "BUSINESS_RULE_VIOLATION": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "DEPENDENCY_FAILURE": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def error_response(
    request: Request,
    exc: DomainError,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Render a domain error in the standard envelope."""
    status_code = ERROR_STATUS_CODES.get(exc.error_code, status.HTTP_400_BAD_REQUEST)
    return JSONResponse(
        status_code=status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details,
            "request_id": getattr(request.state, "request_id", None),
        },
        headers=headers,
    )


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Middleware for consistent error handling.

    Catches unhandled exceptions and returns standardized error responses.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            logger.exception(
                "Unhandled exception",
                path=request.url.path,
                method=request.method,
                error=str(e),
            )
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "error_code": "INTERNAL_ERROR",
                    "message": "An internal error occurred",
                    "details": {},
                    "request_id": getattr(request.state, "request_id", None),
                },
            )


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Map domain errors to their HTTP status."""
    log = logger.warning if exc.error_code != "DEPENDENCY_FAILURE" else logger.error
    log(
        "Request rejected",
        error_code=exc.error_code,
        message=exc.message,
        path=request.url.path,
        method=request.method,
    )
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return error_response(request, exc, headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request body/query validation failures as VALIDATION_ERROR."""
    errors = [
        {"field": ".".join(str(part) for part in err.get("loc", ())), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error_code": "VALIDATION_ERROR",
            "message": "Request validation failed",
            "details": {"errors": errors},
            "request_id": getattr(request.state, "request_id", None),
        },
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions with consistent format."""
    detail = exc.detail
    if isinstance(detail, dict):
        error_code = detail.get("error_code", "ERROR")
        message = detail.get("message", str(detail))
        details = detail.get("details", {})
    else:
        error_code = "ERROR"
        message = str(detail)
        details = {}

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": message,
            "details": details,
            "request_id": getattr(request.state, "request_id", None),
        },
    )


# ============================================================================
# Middleware Setup
# ============================================================================


def setup_middleware(app: FastAPI) -> None:
    """Configure middleware and exception handlers.

    Middleware is added in reverse order (last added = first executed).

    Args:
        app: FastAPI application instance.
    """
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)

    # Error handling (innermost, wraps the handlers)
    app.add_middleware(ErrorHandlerMiddleware)

    # Bearer authentication
    app.add_middleware(BearerAuthMiddleware)

    # Request ID correlation (outermost, so every log line carries it)
    app.add_middleware(RequestIdMiddleware)
