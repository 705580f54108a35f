import time
from unittest.mock import AsyncMock

import pytest
from fastapi import Depends, FastAPI, Request
from fastapi.testclient import TestClient

from app.errors import register_error_handlers
from app.middleware.rate_limit_dependencies import rate_limit_send_link
from app.middleware.rate_limiter import RateLimiter
from app.middleware.request_context import RequestContextMiddleware


class FakeScriptClient:
    def __init__(self, result=None, error: Exception | None = None, enabled: bool = True):
        self.enabled = enabled
        self.result = result
        self.error = error
        self.calls = []

    async def eval(self, script, keys, args):
        self.calls.append((keys, args))
        if self.error:
            raise self.error
        return self.result


def _limited_app() -> FastAPI:
    app = FastAPI()
    register_error_handlers(app)
    app.add_middleware(RequestContextMiddleware)

    @app.post("/limited")
    async def limited(request: Request, _rate: None = Depends(rate_limit_send_link)):
        return {"ok": True, "info": getattr(request.state, "rate_limit_info", None)}

    return app


def test_send_link_limit_blocks_with_retry_after(monkeypatch):
    async def fake_check(ip_address: str):
        return False, {"allowed": False, "limit": 30, "remaining": 0, "retry_after": 7}

    monkeypatch.setattr(
        "app.middleware.rate_limit_dependencies.rate_limiter.check_send_link_limit", fake_check
    )
    monkeypatch.setattr("app.middleware.rate_limit_dependencies.settings.RATE_LIMIT_ENABLED", True)

    response = TestClient(_limited_app()).post("/limited")

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "7"
    assert response.json()["error"] == "rate_limited"


def test_send_link_limit_disabled(monkeypatch):
    check = AsyncMock()
    monkeypatch.setattr(
        "app.middleware.rate_limit_dependencies.rate_limiter.check_send_link_limit", check
    )
    monkeypatch.setattr("app.middleware.rate_limit_dependencies.settings.RATE_LIMIT_ENABLED", False)

    response = TestClient(_limited_app()).post("/limited")

    assert response.status_code == 200
    assert response.json()["info"] is None
    check.assert_not_awaited()


@pytest.mark.asyncio
async def test_limiter_allows_when_redis_not_configured():
    limiter = RateLimiter(client=FakeScriptClient(enabled=False))

    allowed, info = await limiter.check_rate_limit("send_link:ip:1.2.3.4", limit=30, window_seconds=600)

    assert allowed is True
    assert info["error"] == "redis_not_configured"


@pytest.mark.asyncio
async def test_limiter_reports_retry_after_from_oldest_entry():
    oldest = int(time.time()) - 100
    client = FakeScriptClient(result=[0, 30, oldest])
    limiter = RateLimiter(client=client)

    allowed, info = await limiter.check_rate_limit("send_link:ip:1.2.3.4", limit=30, window_seconds=600)

    assert allowed is False
    assert info["remaining"] == 0
    assert 498 <= info["retry_after"] <= 500
    assert client.calls[0][0] == ["ratelimit:send_link:ip:1.2.3.4"]


@pytest.mark.asyncio
async def test_limiter_counts_remaining():
    limiter = RateLimiter(client=FakeScriptClient(result=[1, 12, 0]))

    allowed, info = await limiter.check_rate_limit("k", limit=30, window_seconds=600)

    assert allowed is True
    assert info["remaining"] == 18


@pytest.mark.asyncio
@pytest.mark.parametrize("fail_open", [True, False])
async def test_limiter_redis_failure_mode(fail_open):
    limiter = RateLimiter(client=FakeScriptClient(error=ConnectionError("down")), fail_open=fail_open)

    allowed, info = await limiter.check_rate_limit("k", limit=30, window_seconds=600)

    assert allowed is fail_open
    assert info["error"] == "rate_limiter_error"
