"""
SMART Vitals - Main application entry point.

Serves the SMART launch endpoint and the observation feed API.
"""

import asyncio
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from smart_vitals import __version__
from smart_vitals.auth.launch_controller import get_launch_controller
from smart_vitals.auth.token_store import close_storage_backend, get_storage_backend
from smart_vitals.config.logging import configure_logging, get_logger
from smart_vitals.config.settings import get_settings
from smart_vitals.feed.manager import get_feed_manager
from smart_vitals.middleware import CorrelationIdMiddleware
from smart_vitals.routers import health_router, launch_router, observations_router

logger = get_logger(__name__)

# Background task for session cleanup
_cleanup_task: asyncio.Task | None = None


async def cleanup_sessions() -> tuple[int, int]:
    """
    Purge expired launch state and the feeds of sessions that lost it.

    Returns:
        (expired storage entries removed, feeds dropped)
    """
    expired = await get_storage_backend().cleanup_expired()
    dropped = await get_feed_manager().prune(get_launch_controller().has_session)
    return expired, dropped


async def _session_cleanup_loop(interval: float):
    """Background task to clean up expired sessions periodically."""
    while True:
        try:
            await asyncio.sleep(interval)
            expired, dropped = await cleanup_sessions()
            if expired or dropped:
                logger.info("Session cleanup completed", entries_expired=expired, feeds_dropped=dropped)
        except asyncio.CancelledError:
            break
        except Exception as e:
            logger.error("Session cleanup failed", error=str(e))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown."""
    global _cleanup_task

    settings = get_settings()
    configure_logging(level=settings.log_level, json_format=settings.log_json)
    logger.info(
        "Starting SMART Vitals",
        host=settings.host,
        port=settings.port,
        client_id=settings.client_id,
    )
    get_storage_backend()

    _cleanup_task = asyncio.create_task(_session_cleanup_loop(settings.session_cleanup_interval))
    logger.info("Started session cleanup background task")

    yield

    logger.info("Shutting down SMART Vitals")

    if _cleanup_task:
        _cleanup_task.cancel()
        try:
            await _cleanup_task
        except asyncio.CancelledError:
            pass
        _cleanup_task = None

    closed = get_feed_manager().close_all()
    logger.info("Closed observation feeds", count=closed)
    await close_storage_backend()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="SMART Vitals",
        description="SMART on FHIR launch client for patient vital signs",
        version=__version__,
        lifespan=lifespan,
    )

    origins = settings.cors_origins.split(",") if settings.cors_origins != "*" else ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    app.include_router(health_router)
    app.include_router(launch_router)
    app.include_router(observations_router)

    return app


app = create_app()


def run():
    """Run the SMART Vitals server."""
    settings = get_settings()
    configure_logging(level=settings.log_level, json_format=settings.log_json)

    uvicorn.run(
        "smart_vitals.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
