"""
Security Middleware
Security headers for all API responses
"""

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
import structlog

from social_inbox.core.config import settings

logger = structlog.get_logger()


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add security headers to all responses
    """

    async def dispatch(self, request: Request, call_next):
        # Skip security headers for preflight CORS requests
        if request.method == "OPTIONS":
            return await call_next(request)

        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        # Effective permissions are per-caller and must not be cached by proxies
        response.headers["Cache-Control"] = "no-store"

        # HSTS only in production with HTTPS
        if settings.ENVIRONMENT == "production":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        response.headers["API-Version"] = "v1"

        if "server" in response.headers:
            del response.headers["server"]

        return response
