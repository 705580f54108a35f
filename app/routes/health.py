# app/routes/health.py
"""
Liveness and readiness endpoints.
"""

import time

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.config import settings
from app.db.pool import db_health_check, db_pool
from app.services.redis_client import fast_redis

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "grant-forms-backend"}


@router.get("/readyz")
async def readyz():
    """
    Readiness check across configured dependencies.

    Redis is optional: when REDIS_URL is unset it is reported as skipped.
    """
    checks = {}
    overall_ok = True

    # 1) Document store
    t0 = time.time()
    if db_pool.initialized:
        db_health = await db_health_check()
        checks["database"] = {
            "ok": db_health.get("healthy", False),
            "latency_ms": round((time.time() - t0) * 1000, 1),
        }
        if not checks["database"]["ok"]:
            checks["database"]["error"] = db_health.get("error", "Database unhealthy")
    else:
        checks["database"] = {"ok": False, "error": "Pool not initialized"}
    overall_ok = overall_ok and checks["database"]["ok"]

    # 2) Redis (shared rate-limit state)
    if fast_redis.enabled:
        t0 = time.time()
        redis_ok = await fast_redis.ping()
        checks["redis"] = {"ok": redis_ok, "latency_ms": round((time.time() - t0) * 1000, 1)}
        overall_ok = overall_ok and redis_ok
    else:
        checks["redis"] = {"ok": True, "skipped": True}

    # 3) Configuration
    config_issues = []
    if not settings.S3_BUCKET:
        config_issues.append("S3_BUCKET not set")
    if not settings.mail_configured():
        config_issues.append("mail not configured; links will be logged")
    checks["configuration"] = {
        "ok": bool(settings.S3_BUCKET),
        "issues": config_issues or None,
        "environment": settings.environment,
    }
    overall_ok = overall_ok and checks["configuration"]["ok"]

    body = {"overall_ok": overall_ok, "checks": checks, "timestamp": time.time()}
    return JSONResponse(body, status_code=200 if overall_ok else 503)
