# app/main.py
"""
Grant application backend: draft resume flow and admin magic-link access.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from app.config import settings
from app.db.pool import db_pool
from app.errors import register_error_handlers
from app.infrastructure.audit import audit_logger
from app.infrastructure.observability.logging import get_logger, log_request, setup_logging
from app.middleware import CORSMiddleware, RequestContextMiddleware, SecurityHeadersMiddleware
from app.repositories.draft_repository import PostgresDraftStore
from app.repositories.resume_token_repository import PostgresResumeTokenStore
from app.routes import admin, admin_auth, form, health, resume
from app.services.admin_auth_service import AdminAuthConfig, AdminMagicLinkAuthenticator
from app.services.draft_service import DraftService
from app.services.mail_dispatcher import MailDispatcher
from app.services.object_storage import S3ObjectStorage
from app.services.redis_client import fast_redis
from app.services.resend_limiter import build_last_accepted_store
from app.services.resume_service import ResumeFlowController

# Setup logging before creating the app
setup_logging(log_level=settings.LOG_LEVEL)
logger = get_logger(__name__)


def wire_services(app: FastAPI) -> None:
    """
    Build the service graph onto ``app.state``.

    Raises ConfigurationError when admin auth settings are invalid, which
    aborts startup before any request is served.
    """
    admin_config = AdminAuthConfig.from_settings(settings)
    mailer = MailDispatcher()
    drafts = PostgresDraftStore()
    storage = S3ObjectStorage()
    draft_service = DraftService(drafts, storage)

    app.state.storage = storage
    app.state.draft_service = draft_service
    app.state.audit = audit_logger
    app.state.admin_auth = AdminMagicLinkAuthenticator(
        admin_config, mailer, build_last_accepted_store()
    )
    app.state.resume_flow = ResumeFlowController(
        drafts=drafts,
        resume_tokens=PostgresResumeTokenStore(),
        draft_service=draft_service,
        mailer=mailer,
    )

    if not mailer.configured:
        logger.warning("Mail not configured; resume and magic links will be logged instead")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown with proper resource management."""

    logger.info("Application starting", environment=settings.environment, debug=settings.debug)

    wire_services(app)

    startup_tasks = []

    try:
        if settings.DATABASE_URL:
            logger.info("Initializing database pool")
            await db_pool.initialize()
            startup_tasks.append("database_pool")
        else:
            logger.warning("DATABASE_URL not set; draft storage is unavailable")

        if fast_redis.enabled:
            logger.info("Initializing Redis connection")
            await fast_redis.initialize()
            startup_tasks.append("redis")

        logger.info("All services initialized successfully", services=startup_tasks)

    except Exception as e:
        logger.error("Failed to initialize services", error=str(e), completed_tasks=startup_tasks)

        # Clean up any successfully initialized services in reverse order
        if "redis" in startup_tasks:
            await fast_redis.close()
        if "database_pool" in startup_tasks:
            await db_pool.close()

        raise

    yield

    logger.info("Application shutting down")
    if "redis" in startup_tasks:
        await fast_redis.close()
    if "database_pool" in startup_tasks:
        await db_pool.close()
    logger.info("All services closed")


app = FastAPI(
    title="Grant Forms Backend",
    description="Draft resume flow and admin magic-link access for the grant application form",
    version="0.1.0",
    lifespan=lifespan,
)

register_error_handlers(app)

# Last added runs first: request context populates request.state for the rest
app.add_middleware(SecurityHeadersMiddleware, enforce_https=settings.environment == "production")
app.add_middleware(CORSMiddleware, allowed_origins=settings.cors_origins())
app.add_middleware(RequestContextMiddleware)

# Include routers
app.include_router(health.router)
app.include_router(resume.router, prefix="/api")
app.include_router(form.router, prefix="/api")
app.include_router(admin_auth.router, prefix="/api")
app.include_router(admin.router, prefix="/api")


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log HTTP requests with timing."""
    start_time = time.time()
    response = await call_next(request)
    log_request(
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round((time.time() - start_time) * 1000, 2),
        request_id=getattr(request.state, "request_id", None),
    )
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
