"""
Security Headers Middleware - hardening headers on every API response.

HSTS is only sent when ``enforce_https`` is set (production).

Usage:
    app.add_middleware(SecurityHeadersMiddleware, enforce_https=True)
"""

from starlette.middleware.base import BaseHTTPMiddleware

from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

# JSON API plus one redirect; nothing here should ever be rendered or framed.
_STATIC_HEADERS = {
    "Content-Security-Policy": (
        "default-src 'none'; frame-ancestors 'none'; base-uri 'none'; form-action 'none'"
    ),
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "no-referrer",
    "Cache-Control": "no-store",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=(), payment=()",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, enforce_https: bool = False):
        super().__init__(app)
        self.enforce_https = enforce_https
        logger.info("Security headers middleware initialized", enforce_https=enforce_https)

    async def dispatch(self, request, call_next):
        response = await call_next(request)

        for name, value in _STATIC_HEADERS.items():
            response.headers.setdefault(name, value)

        if self.enforce_https:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response
