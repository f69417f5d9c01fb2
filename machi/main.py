"""
FastAPI application with lifespan-managed resources.

The lifespan owns the database pool, the token verifier, the push HTTP
client, the feature services and the expiry sweep scheduler; routes reach
them through app.state.
"""

import time
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from machi.auth.verify import SupabaseTokenVerifier
from machi.config import settings
from machi.db.pool import db_pool
from machi.errors import MachiError
from machi.features.nearby.api.router import router as nearby_router
from machi.features.nearby.repository.nearby_repository import PostgresNearbyRepository
from machi.features.nearby.services.search_service import NearbySearchService
from machi.features.notifications.api.router import router as notifications_router
from machi.features.notifications.background import BackgroundDispatcher
from machi.features.notifications.inbox import NotificationInbox
from machi.features.notifications.repository import PostgresNotificationRepository
from machi.features.notifications.service import NotificationService
from machi.features.recruitments.api.router import router as recruitments_router
from machi.features.recruitments.repository.recruitment_repository import (
    PostgresRecruitmentRepository,
)
from machi.features.recruitments.services.lifecycle_service import RecruitmentLifecycleService
from machi.features.want_to_dos.api.router import router as want_to_dos_router
from machi.features.want_to_dos.repository.want_to_do_repository import (
    PostgresWantToDoRepository,
)
from machi.features.want_to_dos.services.want_to_do_service import WantToDoService
from machi.infrastructure.observability.logging import get_logger, log_request, setup_logging
from machi.jobs.expiry_sweep_job import (
    ExpirySweepJob,
    ExpirySweepScheduler,
    PostgresExpirySweepRepository,
)
from machi.routes import health

# Setup logging before creating the app
setup_logging(log_level=settings.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown with proper resource management."""

    logger.info("Application starting", environment=settings.environment, debug=settings.debug)

    startup_tasks = []
    http_client: httpx.AsyncClient | None = None
    scheduler: ExpirySweepScheduler | None = None
    notifications: BackgroundDispatcher | None = None

    try:
        logger.info("Initializing database pool")
        await db_pool.initialize()
        startup_tasks.append("database_pool")

        app.state.token_verifier = SupabaseTokenVerifier(settings.jwks_url())
        startup_tasks.append("token_verifier")

        http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(settings.PUSH_TIMEOUT_SECONDS),
            limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
        )
        startup_tasks.append("http_client")

        notifications = BackgroundDispatcher(
            NotificationService(PostgresNotificationRepository(), http_client)
        )
        app.state.notification_inbox = NotificationInbox(PostgresNotificationRepository())
        app.state.nearby_service = NearbySearchService(PostgresNearbyRepository())
        app.state.lifecycle_service = RecruitmentLifecycleService(
            PostgresRecruitmentRepository(), notifications
        )
        app.state.want_to_do_service = WantToDoService(PostgresWantToDoRepository())

        app.state.expiry_scheduler = None
        if settings.EXPIRY_SWEEP_ENABLED:
            scheduler = ExpirySweepScheduler(ExpirySweepJob(PostgresExpirySweepRepository()))
            scheduler.start()
            app.state.expiry_scheduler = scheduler
            startup_tasks.append("expiry_sweep")

        logger.info("All services initialized successfully", services=startup_tasks)

    except Exception as e:
        logger.error("Failed to initialize services", error=str(e), completed_tasks=startup_tasks)

        if http_client is not None:
            try:
                await http_client.aclose()
            except Exception as cleanup_error:
                logger.error("Error closing HTTP client", error=str(cleanup_error))

        if "database_pool" in startup_tasks:
            try:
                await db_pool.close()
            except Exception as cleanup_error:
                logger.error("Error cleaning up database pool", error=str(cleanup_error))

        raise

    yield

    # Shutdown sequence (reverse order)
    logger.info("Application shutting down")

    shutdown_errors = []

    if scheduler is not None:
        try:
            await scheduler.stop()
        except Exception as e:
            logger.error("Error stopping expiry sweep", error=str(e))
            shutdown_errors.append(f"Expiry sweep: {e}")

    # Deliveries still in flight need the HTTP client and the pool
    if notifications is not None:
        try:
            await notifications.drain(timeout=settings.PUSH_TIMEOUT_SECONDS)
        except Exception as e:
            logger.error("Error draining notifications", error=str(e))
            shutdown_errors.append(f"Notifications: {e}")

    try:
        await http_client.aclose()
    except Exception as e:
        logger.error("Error closing HTTP client", error=str(e))
        shutdown_errors.append(f"HTTP client: {e}")

    # Close database pool last (may have active connections)
    try:
        logger.info("Closing database pool")
        await db_pool.close()
    except Exception as e:
        logger.error("Error closing database pool", error=str(e))
        shutdown_errors.append(f"Database: {e}")

    if shutdown_errors:
        logger.warning("Some services had shutdown errors", errors=shutdown_errors)
    else:
        logger.info("All services closed successfully")


app = FastAPI(
    title="Machi API",
    description="Meetup matching: nearby search, recruitments and want-to-dos",
    version="0.1.0",
    lifespan=lifespan,
)

# Include routers
app.include_router(health.router)
app.include_router(nearby_router)
app.include_router(recruitments_router)
app.include_router(want_to_dos_router)
app.include_router(notifications_router)


@app.exception_handler(MachiError)
async def machi_error_handler(request: Request, exc: MachiError):
    if exc.status_code >= 500:
        logger.error(
            "Request failed", path=request.url.path, code=exc.code, error=exc.message
        )
    return JSONResponse(
        status_code=exc.status_code, content={"success": False, "error": exc.to_dict()}
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Invalid request",
                "details": details,
            },
        },
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log HTTP requests with timing."""
    start_time = time.time()
    response = await call_next(request)
    process_time = (time.time() - start_time) * 1000

    log_request(
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(process_time, 2),
    )
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
