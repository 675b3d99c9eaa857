"""
Security middleware for enhanced application security.
"""
import asyncio
import time
import uuid
from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
import structlog

from core.exceptions import _error_body
from core.logging import access_logger

logger = structlog.get_logger("middleware")


def client_host_of(request: Request) -> str:
    """Best-effort client address, honouring X-Forwarded-For."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add security headers to all responses."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"

        # Downloads are served from the storage host through signed URLs
        csp = (
            "default-src 'self'; "
            "img-src 'self' data: https:; "
            "connect-src 'self' https:; "
            "frame-ancestors 'none';"
        )
        response.headers["Content-Security-Policy"] = csp

        # Signed URLs and note metadata must not be cached by intermediaries
        if request.url.path.startswith("/api/"):
            response.headers.setdefault("Cache-Control", "no-store")

        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log all incoming requests and responses."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.time()
        client_host = client_host_of(request)

        logger.info(
            "Request started",
            request_id=request_id,
            method=request.method,
            path=str(request.url.path),
            query_params=str(request.query_params),
            client_host=client_host,
            user_agent=request.headers.get("User-Agent", "unknown")
        )

        try:
            response = await call_next(request)
        except Exception as e:
            process_time = time.time() - start_time
            logger.error(
                "Request failed",
                request_id=request_id,
                exception=str(e),
                process_time_ms=round(process_time * 1000, 2)
            )
            raise

        process_time_ms = round((time.time() - start_time) * 1000, 2)
        logger.info(
            "Request completed",
            request_id=request_id,
            status_code=response.status_code,
            process_time_ms=process_time_ms
        )
        access_logger.info(
            f"{request.method} {request.url.path} {response.status_code}",
            request_id=request_id,
            client_host=client_host,
            process_time_ms=process_time_ms,
        )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(process_time_ms)
        return response


class RequestSizeMiddleware(BaseHTTPMiddleware):
    """Middleware to limit request body size."""

    def __init__(self, app, max_size: int = 100 * 1024 * 1024):
        super().__init__(app)
        self.max_size = max_size

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        content_length = request.headers.get("Content-Length")
        if content_length and content_length.isdigit() and int(content_length) > self.max_size:
            logger.warning(
                "Request body too large",
                content_length=int(content_length),
                max_size=self.max_size,
                client_host=client_host_of(request)
            )
            code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
            return JSONResponse(
                status_code=code,
                content=_error_body(
                    "RequestTooLarge",
                    f"Request body too large. Maximum size: {self.max_size} bytes",
                    code,
                ),
            )

        return await call_next(request)


class RequestTimeoutMiddleware(BaseHTTPMiddleware):
    """Middleware to enforce request timeout."""

    def __init__(self, app, timeout_seconds: int = 300):
        super().__init__(app)
        self.timeout_seconds = timeout_seconds

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        try:
            return await asyncio.wait_for(call_next(request), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.error(
                "Request timeout",
                timeout_seconds=self.timeout_seconds,
                path=str(request.url.path),
                method=request.method
            )
            code = status.HTTP_504_GATEWAY_TIMEOUT
            return JSONResponse(
                status_code=code,
                content=_error_body(
                    "RequestTimeout",
                    f"Request timeout after {self.timeout_seconds} seconds",
                    code,
                ),
            )


def setup_middleware(app, config: dict = None):
    """Setup all security middleware for the application."""
    config = config or {}

    # Add middleware in reverse order (last added is executed first)

    if config.get("enable_timeout", True):
        timeout = config.get("timeout_seconds", 300)
        app.add_middleware(RequestTimeoutMiddleware, timeout_seconds=timeout)

    if config.get("enable_size_limit", True):
        max_size = config.get("max_request_size", 100 * 1024 * 1024)
        app.add_middleware(RequestSizeMiddleware, max_size=max_size)

    if config.get("enable_request_logging", True):
        app.add_middleware(RequestLoggingMiddleware)

    # Security headers (should be first to add headers to all responses)
    if config.get("enable_security_headers", True):
        app.add_middleware(SecurityHeadersMiddleware)
