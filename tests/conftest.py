import copy
from datetime import UTC, datetime

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.errors import UpstreamError, register_error_handlers
from app.middleware.request_context import RequestContextMiddleware
from app.models.domain.draft_domain import ConsumeResult, DraftRecord, ResumeTokenRecord
from app.routes import admin as admin_routes
from app.routes import admin_auth as admin_auth_routes
from app.routes import form as form_routes
from app.routes import resume as resume_routes
from app.services.admin_auth_service import AdminAuthConfig, AdminMagicLinkAuthenticator
from app.services.draft_service import DraftService
from app.services.mail_dispatcher import MailResult
from app.services.resend_limiter import InMemoryLastAcceptedStore
from app.services.resume_service import ResumeFlowController

ADMIN_EMAIL = "staff@org.example"
MAGIC_SECRET = "magic-secret-for-tests-0123456789"
SESSION_SECRET = "session-secret-for-tests-9876543210"


class InMemoryDraftStore:
    def __init__(self):
        self.records: dict[str, DraftRecord] = {}
        self.calls: list[str] = []

    async def get(self, token: str) -> DraftRecord | None:
        self.calls.append("get")
        return self.records.get(token)

    async def save(self, token: str, s3_key: str, step: int, now: datetime) -> DraftRecord:
        self.calls.append("save")
        existing = self.records.get(token)
        record = DraftRecord(
            token=token,
            s3_key=s3_key,
            step=step,
            status="draft",
            email=existing.email if existing else None,
            last_activity_at=now,
            updated_at=now,
        )
        self.records[token] = record
        return record

    async def record_resume_email(self, token, email, status, now) -> None:
        self.calls.append("record_resume_email")
        existing = self.records.get(token) or DraftRecord(token=token)
        self.records[token] = existing.model_copy(
            update={
                "email": email,
                "last_activity_at": now,
                "updated_at": now,
                "last_resume_email_at": now,
                "last_email_status": status,
            }
        )


class InMemoryResumeTokenStore:
    """Check-and-mark happens without an await in between, like the SQL UPDATE."""

    def __init__(self):
        self.records: dict[str, ResumeTokenRecord] = {}

    async def create(self, record: ResumeTokenRecord) -> None:
        self.records[record.resume_token] = record

    async def consume(self, resume_token: str, now: datetime) -> ConsumeResult:
        record = self.records.get(resume_token)
        if record is None:
            return ConsumeResult(status="not_found")
        if record.used:
            return ConsumeResult(status="used", record=record)
        if record.is_expired(now):
            return ConsumeResult(status="expired", record=record)

        used = record.model_copy(update={"used": True, "used_at": now})
        self.records[resume_token] = used
        return ConsumeResult(status="consumed", record=used)


class FakeObjectStorage:
    def __init__(self):
        self.objects: dict[str, object] = {}
        self.fail = False

    async def put_json(self, key: str, payload) -> str:
        if self.fail:
            raise UpstreamError("Object storage write failed")
        self.objects[key] = copy.deepcopy(payload)
        return key

    async def get_json(self, key: str):
        if self.fail or key not in self.objects:
            raise UpstreamError("Object storage read failed")
        return copy.deepcopy(self.objects[key])

    async def presign_get(self, key: str, expires_in: int = 300) -> str:
        if self.fail:
            raise UpstreamError("Could not sign storage URL")
        return f"https://storage.test/{key}?X-Amz-Expires={expires_in}"


class FakeMailer:
    def __init__(self, configured: bool = True, result: MailResult | None = None):
        self.configured = configured
        self.result = result or MailResult(ok=True, message_id="msg-1")
        self.sent: list[dict] = []

    async def send(self, to, subject, html, text, reply_to=None) -> MailResult:
        self.sent.append({"to": to, "subject": subject, "html": html, "text": text})
        return self.result


class RecordingAuditLogger:
    def __init__(self):
        self.events = []

    async def record(self, event) -> bool:
        self.events.append(event)
        return True


class FakeMonotonicClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def draft_store():
    return InMemoryDraftStore()


@pytest.fixture
def resume_store():
    return InMemoryResumeTokenStore()


@pytest.fixture
def object_storage():
    return FakeObjectStorage()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def audit_recorder():
    return RecordingAuditLogger()


@pytest.fixture
def limiter_clock():
    return FakeMonotonicClock()


@pytest.fixture
def admin_config():
    return AdminAuthConfig(
        magic_secret=MAGIC_SECRET,
        session_secret=SESSION_SECRET,
        allowed_emails=frozenset({ADMIN_EMAIL}),
        ui_base_url="https://admin.example.org/admin",
    )


@pytest.fixture
def admin_auth(admin_config, mailer, limiter_clock):
    return AdminMagicLinkAuthenticator(
        admin_config, mailer, InMemoryLastAcceptedStore(clock=limiter_clock)
    )


@pytest.fixture
def draft_service(draft_store, object_storage):
    return DraftService(draft_store, object_storage)


@pytest.fixture
def resume_flow(draft_store, resume_store, draft_service, mailer):
    return ResumeFlowController(
        drafts=draft_store,
        resume_tokens=resume_store,
        draft_service=draft_service,
        mailer=mailer,
        exchange_base_url="https://api.example.org",
        token_ttl_hours=24,
        clock=lambda: datetime.now(UTC),
    )


@pytest.fixture
def build_app(admin_auth, resume_flow, draft_service, object_storage, audit_recorder):
    def _build() -> FastAPI:
        app = FastAPI()
        register_error_handlers(app)
        app.add_middleware(RequestContextMiddleware)
        for module in (resume_routes, form_routes, admin_auth_routes, admin_routes):
            app.include_router(module.router, prefix="/api")
        app.state.admin_auth = admin_auth
        app.state.resume_flow = resume_flow
        app.state.draft_service = draft_service
        app.state.storage = object_storage
        app.state.audit = audit_recorder
        return app

    return _build


@pytest.fixture
def client(build_app):
    return TestClient(build_app(), base_url="https://testserver", follow_redirects=False)


@pytest.fixture
def admin_headers(admin_auth):
    session = admin_auth.sign_session_token(ADMIN_EMAIL)
    return {"x-admin-token": session.token}
