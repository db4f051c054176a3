from fastapi import FastAPI
from contextlib import asynccontextmanager
import logging
import time

from .config import settings
from .core.database import create_pool_from_settings, close_pool
from .core.redis import create_redis_client, close_redis_client
from .core.logger import setup_logging
from .core.http_client import create_http_client, close_http_client
from .services.dead_letter import RedisDeadLetterSink
from .services.job_publisher import JobPublisher
from .services.media.manager import MediaManager
from .services.media.validation import ValidationConfig
from .services.media_assets import MediaAssetRepository

# Setup logging first
setup_logging(settings.log_level, settings.log_file)
logger = logging.getLogger(__name__)


def log_step(step_name: str, start_time: float) -> float:
    """Log step completion with timing"""
    elapsed = time.time() - start_time
    logger.info(f"[STARTUP] {step_name} completed in {elapsed:.2f}s")
    return time.time()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for FastAPI app"""
    total_start = time.time()

    # Startup
    logger.info(f"[STARTUP] Starting {settings.app_name} v{settings.app_version}")

    try:
        step_start = time.time()

        # Storage config is validated before any connection is opened
        primary_config = settings.storage_config()
        fallback_config = settings.fallback_storage_config()

        logger.info("[STARTUP] Connecting to database...")
        app.state.db_pool = await create_pool_from_settings(settings)
        step_start = log_step("Database pool", step_start)

        logger.info("[STARTUP] Connecting to Redis...")
        app.state.redis = await create_redis_client(settings.redis_url)
        step_start = log_step("Redis client", step_start)

        app.state.http_client = create_http_client(timeout=settings.whatsapp_timeout)
        app.state.media_manager = MediaManager.from_config(
            primary_config,
            fallback_config,
            validation_config=ValidationConfig.from_settings(settings),
            http_client=app.state.http_client,
        )
        app.state.media_assets = MediaAssetRepository(app.state.db_pool)
        app.state.job_publisher = JobPublisher(app.state.redis, settings.worker_queue_channel)
        app.state.dead_letter = RedisDeadLetterSink(
            app.state.redis,
            settings.worker_dead_letter_key,
            max_length=settings.worker_dead_letter_max_length,
        )
        step_start = log_step("Services", step_start)

        total_elapsed = time.time() - total_start
        logger.info(
            f"[STARTUP] Application ready in {total_elapsed:.2f}s "
            f"(storage: {app.state.media_manager.get_storage_info()})"
        )

    except Exception as e:
        logger.error(f"[STARTUP] Failed to initialize: {e}")
        raise

    yield

    # Shutdown
    logger.info("[SHUTDOWN] Shutting down application...")
    await app.state.media_manager.close()
    await close_http_client(app.state.http_client)
    await close_pool(app.state.db_pool)
    await close_redis_client(app.state.redis)
    logger.info("[SHUTDOWN] Application shutdown complete")


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "app": settings.app_name,
        "version": settings.app_version,
        "job_channel": settings.worker_queue_channel,
        "docs": "/docs" if settings.debug else "disabled",
    }


# Include all routers
from .routers import health, media, messages  # noqa: E402

# Local storage URLs point back at this app; mounts go before the /media router
media.mount_local_files(app, settings.local_storage_configs())

app.include_router(messages.router, prefix="/messages", tags=["Messages"])
app.include_router(media.router, prefix="/media", tags=["Media"])
app.include_router(health.router, prefix="/health", tags=["Health & Monitoring"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "wapp_dispatch.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
