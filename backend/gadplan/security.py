"""
Security middleware for the GAD Plan API.

- Rate limiting (IP-based using slowapi)
- Security headers and a per-request ID for log correlation
- Request size validation
- Sanitized responses for unhandled errors

Configuration via environment variables:
- RATE_LIMIT_PER_MINUTE: Requests per minute per IP (default: 100)
- MAX_REQUEST_SIZE_MB: Maximum request body size in MB (default: 2)
- TRUSTED_PROXY_COUNT: Proxies in front of the app (default: 1)
- ENVIRONMENT: 'production' hides unhandled error details
"""

import ipaddress
import logging
import os
import time
import uuid
from typing import Callable

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

logger = logging.getLogger(__name__)

# =============================================================================
# Configuration
# =============================================================================

RATE_LIMIT_PER_MINUTE = int(os.getenv("RATE_LIMIT_PER_MINUTE", "100"))
DEFAULT_RATE_LIMIT = f"{RATE_LIMIT_PER_MINUTE}/minute"
EXPORT_RATE_LIMIT = "10/minute"

MAX_REQUEST_SIZE_MB = int(os.getenv("MAX_REQUEST_SIZE_MB", "2"))
MAX_REQUEST_SIZE_BYTES = MAX_REQUEST_SIZE_MB * 1024 * 1024

TRUSTED_PROXY_COUNT = int(os.getenv("TRUSTED_PROXY_COUNT", "1"))

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
IS_PRODUCTION = ENVIRONMENT.lower() == "production"


# =============================================================================
# Rate Limiter
# =============================================================================

def _is_valid_ip(ip_str: str) -> bool:
    if not ip_str or len(ip_str) > 45:
        return False
    try:
        ipaddress.ip_address(ip_str)
        return True
    except ValueError:
        return False


def get_client_ip(request: Request) -> str:
    """Client IP, taking the rightmost untrusted X-Forwarded-For entry.

    Falls back to X-Real-IP and then the direct peer address; returns
    ``"unknown"`` when none of them is a valid IP.
    """
    direct_ip = request.client.host if request.client else None

    if forwarded_for := request.headers.get("X-Forwarded-For"):
        if ips := [ip.strip() for ip in forwarded_for.split(",") if ip.strip()]:
            if len(ips) > TRUSTED_PROXY_COUNT:
                client_ip = ips[-(TRUSTED_PROXY_COUNT + 1)]
            else:
                client_ip = ips[0]
            if _is_valid_ip(client_ip):
                return client_ip
            logger.warning("Invalid IP in X-Forwarded-For header: %r", client_ip[:50])

    if real_ip := request.headers.get("X-Real-IP"):
        real_ip = real_ip.strip()
        if _is_valid_ip(real_ip):
            return real_ip
        logger.warning("Invalid X-Real-IP header: %r", real_ip[:50])

    return direct_ip if direct_ip and _is_valid_ip(direct_ip) else "unknown"


limiter = Limiter(
    key_func=get_client_ip,
    default_limits=[DEFAULT_RATE_LIMIT],
    storage_uri="memory://",
    strategy="fixed-window",
)


# =============================================================================
# Middleware
# =============================================================================

class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers and an ``X-Request-ID`` to every response."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        start = time.time()

        response = await call_next(request)

        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if IS_PRODUCTION:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        response.headers["X-Request-ID"] = request_id
        if not response.headers.get("Cache-Control"):
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, private"

        logger.info(
            "Request completed: %s %s status=%s duration=%.3fs request_id=%s",
            request.method,
            request.url.path,
            response.status_code,
            time.time() - start,
            request_id,
        )
        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject bodies larger than MAX_REQUEST_SIZE_MB."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if content_length := request.headers.get("content-length"):
            try:
                size = int(content_length)
            except ValueError:
                return JSONResponse(
                    status_code=400,
                    content={"error": "bad_request", "detail": "Invalid Content-Length header"},
                )
            if size > MAX_REQUEST_SIZE_BYTES:
                return JSONResponse(
                    status_code=413,
                    content={
                        "error": "request_too_large",
                        "detail": f"Request body too large. Maximum size is {MAX_REQUEST_SIZE_MB}MB.",
                    },
                )
        return await call_next(request)


# =============================================================================
# Handlers
# =============================================================================

async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning(
        "Rate limit exceeded: client_ip=%s path=%s", get_client_ip(request), request.url.path
    )
    return JSONResponse(
        status_code=429,
        content={
            "error": "rate_limited",
            "detail": "Rate limit exceeded. Please slow down your requests.",
        },
        headers={"Retry-After": "60"},
    )


def create_unhandled_error_handler() -> Callable:
    """Build the catch-all handler; production responses carry no internals."""

    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        request_id = getattr(request.state, "request_id", str(uuid.uuid4()))
        logger.error(
            "Unhandled exception on %s %s request_id=%s",
            request.method,
            request.url.path,
            request_id,
            exc_info=exc,
        )
        detail = (
            "An internal server error occurred. Please try again later."
            if IS_PRODUCTION
            else f"{type(exc).__name__}: {exc}"
        )
        return JSONResponse(
            status_code=500,
            content={"error": "internal_error", "detail": detail, "request_id": request_id},
        )

    return unhandled_error_handler


def setup_security(app: FastAPI) -> None:
    """Register the limiter, middleware and handlers on ``app``."""
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestSizeLimitMiddleware)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(Exception, create_unhandled_error_handler())

    logger.info(
        "Security middleware configured: rate_limit=%s/min, max_request_size=%sMB, environment=%s",
        RATE_LIMIT_PER_MINUTE,
        MAX_REQUEST_SIZE_MB,
        ENVIRONMENT,
    )
