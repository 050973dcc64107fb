"""
FastAPI Application Entry Point.
Initializes the FastAPI app with middleware, CORS, and routes, and wraps it
with the Socket.IO server.
"""
import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError

from sortmyai.config import settings
from sortmyai.core.cache import cache
from sortmyai.core.database import AsyncSessionLocal, engine
from sortmyai.core.exceptions import BackendError
from sortmyai.core.logging_config import configure_logging
from sortmyai.core.rate_limit import limiter
from sortmyai.core.websocket import connection_manager

logger = logging.getLogger(__name__)


async def reconcile_follow_counters_periodically(interval: int) -> None:
    """Repair drifted follow counters every `interval` seconds."""
    from sortmyai.services.follow_service import FollowService

    while True:
        await asyncio.sleep(interval)
        try:
            async with AsyncSessionLocal() as db:
                await FollowService(db).reconcile_counters()
        except Exception as e:
            logger.error(f"Follow counter reconciliation failed: {e}", exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    # Startup
    configure_logging()
    await cache.connect()

    reconcile_task = None
    if settings.follow_reconcile_interval_seconds > 0:
        reconcile_task = asyncio.create_task(
            reconcile_follow_counters_periodically(settings.follow_reconcile_interval_seconds)
        )

    yield

    # Shutdown
    if reconcile_task:
        reconcile_task.cancel()
        try:
            await reconcile_task
        except asyncio.CancelledError:
            pass
    await connection_manager.close()
    await cache.disconnect()
    await engine.dispose()


# Initialize FastAPI application
app = FastAPI(
    title="SortMyAI Social API",
    description="Follow graph, direct messages and notifications for SortMyAI creators",
    version="1.0.0",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan,
)

# Add rate limiter state and error handler
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    """Store failures outside the service layer (e.g. the auth dependency) become 503."""
    logger.error(f"Store failure on {request.url.path}: {exc}", exc_info=True)
    return await http_exception_handler(request, BackendError("Storage backend unavailable"))


# CORS Middleware
# WebSocket CORS is handled by Socket.IO itself (cors_allowed_origins)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Health Check Endpoints
@app.get("/health", tags=["Health"])
async def health_check():
    """Basic health check endpoint."""
    return JSONResponse(
        status_code=200,
        content={
            "status": "healthy",
            "environment": settings.environment,
        }
    )


@app.get("/health/ready", tags=["Health"])
async def readiness_check():
    """
    Readiness check endpoint.
    Verifies database and (when configured) cache connectivity.
    """
    checks = {
        "database": False,
        "redis": "not_configured" if not settings.redis_url else False,
    }

    try:
        from sqlalchemy import text

        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
            checks["database"] = True
    except Exception as e:
        logger.warning(f"Readiness: database check failed: {e}")

    if settings.redis_url:
        try:
            checks["redis"] = bool(cache.redis and await cache.redis.ping())
        except Exception as e:
            logger.warning(f"Readiness: redis check failed: {e}")

    redis_ok = checks["redis"] == "not_configured" or checks["redis"] is True
    all_healthy = checks["database"] and redis_ok

    return JSONResponse(
        status_code=200 if all_healthy else 503,
        content={
            "status": "ready" if all_healthy else "not ready",
            "checks": checks,
        }
    )


# Include API routers
from sortmyai.api.v1 import conversations, messages, notifications, users  # noqa: E402

app.include_router(
    users.router,
    prefix="/api/v1/users",
    tags=["Users"]
)

app.include_router(
    conversations.router,
    prefix="/api/v1/conversations",
    tags=["Conversations"]
)

app.include_router(
    messages.router,
    prefix="/api/v1/messages",
    tags=["Messages"]
)

app.include_router(
    notifications.router,
    prefix="/api/v1/notifications",
    tags=["Notifications"]
)

# Keep a reference to the FastAPI app (tests use it directly)
fastapi_app = app

# Socket.IO handles /socket.io/* and FastAPI handles everything else
app = connection_manager.get_asgi_app(fastapi_app)
