"""
RequestContext Middleware - request tracing and client identity.

Sets on every request.state:
- request_id: correlation ID (reuses a well-formed inbound X-Request-ID)
- ip_address: client IP, honoring X-Forwarded-For only from trusted proxies
- user_agent: client user agent string

These feed the per-IP send-link throttle, audit events and error logs.
"""

import re
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import settings
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

_REQUEST_ID_RX = re.compile(r"^[A-Za-z0-9-]{8,64}$")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Add request context to all incoming requests.

    request.state namespace:
    - request_id, ip_address, user_agent: set here
    - rate_limit_info: set by rate limit dependencies
    - admin_email: set by the admin session dependency
    """

    async def dispatch(self, request: Request, call_next):
        inbound_id = request.headers.get("x-request-id", "")
        request_id = inbound_id if _REQUEST_ID_RX.match(inbound_id) else str(uuid.uuid4())
        request.state.request_id = request_id
        request.state.ip_address = self._extract_client_ip(request)
        request.state.user_agent = request.headers.get("user-agent")

        logger.debug(
            "Request started",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            ip_address=request.state.ip_address,
        )

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    def _extract_client_ip(self, request: Request) -> str | None:
        """
        Client IP with proxy spoofing protection.

        X-Forwarded-For is trusted only when TRUST_X_FORWARDED_FOR is enabled
        and the direct peer is one of TRUSTED_PROXY_IPS.
        """
        direct_ip = request.client.host if request.client else None
        if not settings.TRUST_X_FORWARDED_FOR:
            return direct_ip

        if direct_ip and direct_ip in settings.TRUSTED_PROXY_IPS:
            forwarded_for = request.headers.get("x-forwarded-for")
            if forwarded_for:
                # "client, proxy1, proxy2"
                return forwarded_for.split(",")[0].strip()

        return direct_ip
