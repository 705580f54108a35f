"""
Middleware components for request processing.

- Request context (request ID, client IP, user agent)
- Per-IP rate limiting for public endpoints
- Security headers and CORS
"""

from app.middleware.cors import CORSMiddleware
from app.middleware.rate_limit_dependencies import rate_limit_send_link
from app.middleware.rate_limiter import rate_limiter
from app.middleware.request_context import RequestContextMiddleware
from app.middleware.security_headers import SecurityHeadersMiddleware

__all__ = [
    "RequestContextMiddleware",
    "SecurityHeadersMiddleware",
    "CORSMiddleware",
    "rate_limiter",
    "rate_limit_send_link",
]
