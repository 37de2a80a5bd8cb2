import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import Depends, FastAPI
from starlette.middleware.cors import CORSMiddleware

from lms_service.api.v1.router import api_router
from lms_service.clients.redis_client import RedisClient
from lms_service.config import get_settings
from lms_service.db.session import init_db, close_db, AsyncSessionLocal
from lms_service.dependencies.services import get_answer_buffer, get_notification_gateway, get_redis_client
from lms_service.schemas.generic import HealthResponse
from lms_service.services.notification_service import NotificationGateway
from lms_service.services.task_service import AttemptExpirySweeper
from lms_service.utils.exception_handlers import register_exception_handlers
from lms_service.utils.log import setup_logging

setup_logging()
logger = logging.getLogger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI) -> AsyncGenerator:
    """Lifecycle events"""
    # STARTUP
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    await init_db()

    redis_client = await get_redis_client()
    if not await redis_client.ping():
        logger.warning("Redis not reachable, using in-process locks and draft buffer")

    sweeper = None
    if settings.attempt_sweep_enabled:
        sweeper = AttemptExpirySweeper(
            session_factory=AsyncSessionLocal,
            redis_client=redis_client,
            answer_buffer=await get_answer_buffer(redis_client),
            interval_seconds=settings.attempt_sweep_interval_seconds,
        )
        sweeper.start()

    yield

    # SHUTDOWN
    logger.info(f"Shutting down {settings.app_name}")
    if sweeper:
        await sweeper.stop()
    await redis_client.disconnect()
    await close_db()


# Create app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="LMS core: lesson access, quiz attempts, grading and notifications",
    lifespan=lifespan,
    docs_url="/docs" if settings.environment == "development" else None,
    redoc_url="/redoc" if settings.environment == "development" else None,
)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register global exception handlers
register_exception_handlers(app)


# Health check
@app.get("/health", response_model=HealthResponse)
async def health_check(
        redis_client: RedisClient = Depends(get_redis_client),
        gateway: NotificationGateway = Depends(get_notification_gateway),
):
    return HealthResponse(
        status="healthy",
        service=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
        redis="connected" if await redis_client.ping() else "unavailable",
        connected_clients=gateway.get_connected_clients_count(),
    )


@app.get("/")
async def root():
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "docs": "/docs",
    }


# Include routers
app.include_router(api_router, prefix="/api/v1")
