import logging
import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from .api.v1.endpoints import limiter, router as area_router
from .config import get_settings
from .dependencies import close_service_container, get_service_container, init_service_container
from .logging_config import setup_logging, setup_logging_from_settings

# Setup structured logging based on environment
setup_logging(
    level=os.environ.get('LOG_LEVEL', 'INFO'),
    service_name="area-index"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Build the service graph before the first request and release the
    thread pools on shutdown. Configuration errors abort startup.
    """
    logger.info("Starting area containment index service...", extra={"event": "startup_begin"})

    # get_settings() validates and raises ConfigurationError on critical problems
    settings = get_settings()
    setup_logging_from_settings(settings)
    container = init_service_container(settings)

    # Instantiate eagerly so a broken index store fails startup, not the first request
    container.area_service

    logger.info(
        "Area containment index service started",
        extra={"event": "startup_complete", "index_store": settings.INDEX_STORE},
    )

    yield

    logger.info("Shutting down area containment index service...", extra={"event": "shutdown_begin"})
    await close_service_container()
    logger.info("Area containment index service shut down successfully", extra={"event": "shutdown_complete"})


app = FastAPI(
    title="Area Containment Index",
    description="Grid-based containment index that answers batched point-in-area queries",
    version="1.0.0",
    lifespan=lifespan
)

# Add rate limiting error handler
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.include_router(area_router)


@app.get("/health")
async def health_check():
    """Service liveness plus a summary of what is indexed"""
    try:
        container = get_service_container()
        service = container.area_service
        areas = service.area_store.get_all()
        return {
            "status": "healthy",
            "service": "Area Containment Index",
            "version": "v1.0.0",
            "areas": len(areas),
            "indexed_areas": sum(1 for a in areas if service.has_index(a.id)),
            "index_store": container.settings.INDEX_STORE,
            "thread_pools": container.thread_pool_service.get_pool_stats(),
            "uptime_seconds": round(time.time() - _start_time, 1),
        }
    except RuntimeError as e:
        # Container not initialised yet
        return {"status": "starting", "service": "Area Containment Index", "error": str(e)}


_start_time = time.time()

if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
