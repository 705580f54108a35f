"""
Rate Limit Dependencies - per-IP throttling for public endpoints.

Usage:
    from app.middleware.rate_limit_dependencies import rate_limit_send_link

    @router.post("/send-link")
    async def send_link(
        body: SendLinkRequest,
        _rate: None = Depends(rate_limit_send_link),
    ):
        ...
"""

from fastapi import Request

from app.config import settings
from app.errors import RateLimited
from app.infrastructure.observability.logging import get_logger
from app.middleware.rate_limiter import rate_limiter

logger = get_logger(__name__)


async def rate_limit_send_link(request: Request) -> None:
    """
    Per-IP limit on resume link requests.

    Raises:
        RateLimited: 429 with Retry-After when the window is exhausted
    """
    if not settings.RATE_LIMIT_ENABLED:
        return

    ip_address = getattr(request.state, "ip_address", None)
    if not ip_address:
        logger.warning("Rate limit check skipped - no IP address")
        return

    allowed, info = await rate_limiter.check_send_link_limit(ip_address)
    request.state.rate_limit_info = info

    if not allowed:
        logger.warning(
            "IP rate limit exceeded",
            ip_address=ip_address,
            limit=info["limit"],
            retry_after=info["retry_after"],
            path=request.url.path,
        )
        raise RateLimited(
            f"Too many requests from your IP. Try again in {info['retry_after']} seconds.",
            retry_after=info["retry_after"],
        )
