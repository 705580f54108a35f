import json

import httpx
import pytest

from app.services.mail_dispatcher import RESEND_API_URL, MailDispatcher, is_email, log_link_fallback


def _dispatcher(handler, **kwargs) -> MailDispatcher:
    params = {"api_key": "re_test_key", "sender": "Grants <grants@example.org>", "reply_to": ""}
    params.update(kwargs)
    return MailDispatcher(transport=httpx.MockTransport(handler), **params)


@pytest.mark.asyncio
async def test_send_posts_to_resend():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["auth"] = request.headers["authorization"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "email_123"})

    result = await _dispatcher(handler, reply_to="help@example.org").send(
        to="parent@example.com", subject="Hi", html="<p>Hi</p>", text="Hi"
    )

    assert result.ok is True
    assert result.message_id == "email_123"
    assert captured["url"] == RESEND_API_URL
    assert captured["auth"] == "Bearer re_test_key"
    assert captured["body"]["to"] == ["parent@example.com"]
    assert captured["body"]["reply_to"] == "help@example.org"


@pytest.mark.asyncio
async def test_send_not_configured_skips():
    def handler(request):
        raise AssertionError("no request expected")

    result = await _dispatcher(handler, api_key="").send("parent@example.com", "s", "h", "t")

    assert result.ok is False
    assert result.skipped is True
    assert result.reason == "not_configured"


@pytest.mark.asyncio
async def test_send_bad_recipient():
    def handler(request):
        raise AssertionError("no request expected")

    result = await _dispatcher(handler).send("not-an-email", "s", "h", "t")
    assert result.reason == "bad_recipient"


@pytest.mark.asyncio
async def test_send_provider_error_never_raises():
    result = await _dispatcher(lambda request: httpx.Response(422, json={"message": "bad"})).send(
        "parent@example.com", "s", "h", "t"
    )
    assert result.ok is False
    assert result.reason == "provider_error"


@pytest.mark.asyncio
async def test_send_transport_exception_never_raises():
    def handler(request):
        raise httpx.ConnectError("boom", request=request)

    result = await _dispatcher(handler).send("parent@example.com", "s", "h", "t")
    assert result.ok is False
    assert result.reason == "exception"


@pytest.mark.parametrize(
    "value, expected",
    [("a@b.co", True), ("not-an-email", False), ("a b@c.d", False), (None, False)],
)
def test_is_email(value, expected):
    assert is_email(value) is expected


def test_link_fallback_hides_link_in_production(monkeypatch):
    calls = []

    class Recorder:
        def warning(self, event, **kwargs):
            calls.append(kwargs)

    monkeypatch.setattr("app.services.mail_dispatcher.logger", Recorder())
    monkeypatch.setattr("app.services.mail_dispatcher.settings.environment", "production")
    log_link_fallback("resume_link", "parent@example.com", "https://x/?rt=secret", "exception")
    monkeypatch.setattr("app.services.mail_dispatcher.settings.environment", "development")
    log_link_fallback("resume_link", "parent@example.com", "https://x/?rt=secret", "exception")

    assert "link" not in calls[0]
    assert calls[1]["link"] == "https://x/?rt=secret"
