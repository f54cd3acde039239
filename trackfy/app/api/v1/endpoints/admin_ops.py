"""
Admin Operations API Endpoints.

Maintenance endpoints: on-demand retention cleanup and health report.
"""

import time

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from trackfy.app.core.config import settings
from trackfy.app.core.dependencies import get_clock, get_store, get_sweeper
from trackfy.app.core.clock import Clock
from trackfy.app.core.redis_client import ping_redis
from trackfy.app.schemas.ops import CleanupResponse, HealthResponse
from trackfy.app.services.record_store import RecordStore
from trackfy.app.services.retention import RetentionSweeper

router = APIRouter(tags=["Admin - Ops"])

STARTED_AT = time.monotonic()


@router.post("/cleanup", response_model=CleanupResponse)
async def trigger_cleanup(sweeper: RetentionSweeper = Depends(get_sweeper)):
    """
    Run the retention sweep now.

    Removes delivered codes created 30 or more days ago and any
    generation left empty. Returns the same summary as the scheduled run.
    """
    summary = await sweeper.sweep()
    if not summary.success:
        return JSONResponse(
            status_code=500,
            content={
                "error_code": "ERR_STORAGE_001",
                "message": "Erro durante limpeza",
                "error": "Erro durante limpeza",
                "details": {"error": summary.error},
            }
        )
    return CleanupResponse(message="Limpeza executada com sucesso", **summary.model_dump())


@router.get("/health", response_model=HealthResponse)
async def health_check(
    request: Request,
    clock: Clock = Depends(get_clock),
    store: RecordStore = Depends(get_store),
):
    """
    Health check endpoint.

    Returns:
        dict: Status, uptime and enabled maintenance features
    """
    scheduler = getattr(request.app.state, "retention_scheduler", None)
    return HealthResponse(
        status="OK",
        app_name=settings.app_name,
        version=settings.api_version,
        timestamp=clock.now(),
        uptime=round(time.monotonic() - STARTED_AT, 3),
        store_backend=store.backend,
        features={
            "automaticCleanup": bool(scheduler and scheduler.running),
            "cleanupIntervalSeconds": settings.cleanup_interval_seconds,
            "retentionDays": settings.retention_days,
            "manualDelete": True,
            "redisLease": await ping_redis(),
        },
    )
