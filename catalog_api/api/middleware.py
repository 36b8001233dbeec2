"""API middleware for the Catalog API.

Provides:
- Editor identity resolution and enforcement
- Request ID correlation
- Error handling
"""

import time
from typing import Callable
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from catalog_api.infrastructure.identity import (
    ApiKeyIdentityProvider,
    IdentityProvider,
    bearer_token,
)

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

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        """Process request with correlation ID.

        Args:
            request: Incoming request.
            call_next: Next middleware/handler.

        Returns:
            Response with request ID header.
        """
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
# Editor Identity Middleware
# ============================================================================


READ_METHODS = {"GET", "HEAD", "OPTIONS"}
PROTECTED_PREFIX = "/catalog"
ADMIN_PREFIX = "/catalog/admin"


def requires_editor(method: str, path: str) -> bool:
    """Check whether a route needs an editor.

    Catalog writes and everything under ``/catalog/admin`` do; catalog
    reads, health checks and docs do not.
    """
    path = path.rstrip("/")
    if path == ADMIN_PREFIX or path.startswith(ADMIN_PREFIX + "/"):
        return True
    if path == PROTECTED_PREFIX or path.startswith(PROTECTED_PREFIX + "/"):
        return method.upper() not in READ_METHODS
    return False


def _unauthorized(error_code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={
            "error_code": error_code,
            "message": message,
            "details": [],
        },
        headers={"WWW-Authenticate": "Bearer"},
    )


class EditorIdentityMiddleware(BaseHTTPMiddleware):
    """Middleware resolving the catalog editor behind each request.

    Sets ``request.state.editor`` (None for anonymous callers) and rejects
    protected requests without a valid editor. Supports Bearer token
    format: "Authorization: Bearer <token>"
    """

    def __init__(self, app: ASGIApp, provider: IdentityProvider | None = None) -> None:
        """Initialize middleware.

        Args:
            app: Wrapped application.
            provider: Identity collaborator (bearer tokens from settings by default).
        """
        super().__init__(app)
        self.provider = provider or ApiKeyIdentityProvider()

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        """Resolve the editor and enforce it on protected routes.

        Args:
            request: Incoming request.
            call_next: Next middleware/handler.

        Returns:
            Response or 401 error.
        """
        editor = self.provider.current_editor(request)
        request.state.editor = editor

        path = request.url.path
        if editor is None and requires_editor(request.method, path):
            if not request.headers.get("Authorization"):
                logger.warning(
                    "Missing authorization header",
                    path=path,
                    method=request.method,
                )
                return _unauthorized("UNAUTHORIZED", "Missing Authorization header")

            if bearer_token(request) is None:
                logger.warning(
                    "Invalid authorization format",
                    path=path,
                    method=request.method,
                )
                return _unauthorized(
                    "UNAUTHORIZED",
                    "Invalid Authorization header format. Use 'Bearer <token>'",
                )

            logger.warning(
                "Invalid editor token",
                path=path,
                method=request.method,
            )
            return _unauthorized("INVALID_API_KEY", "Invalid API key")

        if editor is not None:
            structlog.contextvars.bind_contextvars(editor=editor.name)
        try:
            return await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("editor")


# ============================================================================
# Error Handling Middleware
# ============================================================================


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Middleware for consistent error handling.

    Catches unhandled exceptions and returns standardized error responses.
    """

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        """Handle errors uniformly.

        Args:
            request: Incoming request.
            call_next: Next middleware/handler.

        Returns:
            Response or error response.
        """
        try:
            return await call_next(request)
        except Exception as e:
            request_id = getattr(request.state, "request_id", None)

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
                    "details": [],
                    "request_id": request_id,
                },
            )


# ============================================================================
# Middleware Setup
# ============================================================================


def setup_middleware(app: FastAPI, provider: IdentityProvider | None = None) -> None:
    """Configure all middleware for the application.

    Middleware is added in reverse order (last added = first executed).

    Args:
        app: FastAPI application instance.
        provider: Identity collaborator for editor resolution.
    """
    # Error handling (closest to the routes)
    app.add_middleware(ErrorHandlerMiddleware)

    # Editor identity (runs after the request ID is bound)
    app.add_middleware(EditorIdentityMiddleware, provider=provider)

    # Request ID correlation (runs first)
    app.add_middleware(RequestIdMiddleware)
