# machi/routes/health.py
"""
Health check endpoints: liveness, readiness (database pool and expiry
sweeper) and raw pool health.
"""

import time

from fastapi import APIRouter, Request

from machi.config import settings
from machi.db.pool import db_health_check

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "machi-api"}


@router.get("/readyz")
async def readyz(request: Request):
    """Readiness check covering the database pool and the expiry sweeper."""
    checks = {}
    overall_ok = True

    # 1) Database pool
    t0 = time.time()
    try:
        db_health = await db_health_check()
        is_healthy = db_health.get("healthy", False)
        checks["database"] = {
            "ok": is_healthy,
            "latency_ms": round((time.time() - t0) * 1000, 1),
        }

        if "pool_stats" in db_health:
            checks["database"]["pool_stats"] = db_health["pool_stats"]
        if "warnings" in db_health:
            checks["database"]["warnings"] = db_health["warnings"]
        if not is_healthy:
            checks["database"]["error"] = db_health.get("error", "Database unhealthy")

        overall_ok = overall_ok and is_healthy

    except Exception as e:
        checks["database"] = {
            "ok": False,
            "error": f"{type(e).__name__}: {e}",
            "latency_ms": round((time.time() - t0) * 1000, 1),
        }
        overall_ok = False

    # 2) Expiry sweeper; only required when enabled
    scheduler = getattr(request.app.state, "expiry_scheduler", None)
    if scheduler is None:
        sweeper_ok = not settings.EXPIRY_SWEEP_ENABLED
        checks["expiry_sweep"] = {"ok": sweeper_ok, "enabled": settings.EXPIRY_SWEEP_ENABLED}
    else:
        sweeper_status = scheduler.status()
        sweeper_ok = sweeper_status["running"]
        checks["expiry_sweep"] = {"ok": sweeper_ok, **sweeper_status}
    overall_ok = overall_ok and sweeper_ok

    checks["configuration"] = {"ok": True, "environment": settings.environment}

    return {"overall_ok": overall_ok, "checks": checks, "timestamp": time.time()}


@router.get("/health/database")
async def database_health():
    """Detailed database pool health information."""
    return await db_health_check()
