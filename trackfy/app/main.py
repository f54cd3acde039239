"""
FastAPI Application Entry Point.

This is the main application file for the Trackfy Tracking API.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from trackfy.app.api.v1.router import router as api_router
from trackfy.app.core.config import settings
from trackfy.app.core.dependencies import get_clock, get_store
from trackfy.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)
from trackfy.app.core.observability import ObservabilityMiddleware, configure_logging
from trackfy.app.core.redis_client import redis_client
from trackfy.app.db.session import init_models
from trackfy.app.domain.tracking.status_engine import StatusEngine
from trackfy.app.services.retention import RetentionScheduler, RetentionSweeper

logger = logging.getLogger("trackfy")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Creates the document table when the SQL store is selected.
    2. Starts the retention scheduler and stops it on shutdown.
    """
    configure_logging()
    store = get_store()
    if store.backend == "sql":
        await init_models()

    scheduler = None
    if settings.cleanup_enabled:
        sweeper = RetentionSweeper(store=store, engine=StatusEngine(clock=get_clock()))
        scheduler = RetentionScheduler(sweeper, redis=redis_client)
        scheduler.start()
    app.state.retention_scheduler = scheduler

    logger.info("%s started (%s store)", settings.app_name, store.backend)
    yield

    if scheduler is not None:
        await scheduler.stop()
    if redis_client is not None:
        await redis_client.aclose()

# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Simulated parcel tracking with automatic retention cleanup",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


# Include API router
app.include_router(api_router, prefix="/api")


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.

    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to Trackfy Tracking API",
        "docs": "/docs",
        "health": "/api/health",
    }
