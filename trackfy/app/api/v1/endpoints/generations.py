"""
Generation and Statistics API Endpoints.

Read-only views for the admin dashboard.
"""

from fastapi import APIRouter, Depends

from trackfy.app.core.dependencies import get_tracking_service
from trackfy.app.schemas.tracking import GenerationsResponse, StatsResponse
from trackfy.app.services.tracking_service import TrackingService

router = APIRouter(tags=["Generations"])


@router.get("/generations", response_model=GenerationsResponse)
async def list_generations(service: TrackingService = Depends(get_tracking_service)):
    """List generations, newest first, with current statuses."""
    return GenerationsResponse(generations=await service.list_generations())


@router.get("/stats", response_model=StatsResponse)
async def get_stats(service: TrackingService = Depends(get_tracking_service)):
    """
    Dashboard counters.

    Returns total codes, delivered (day 10), in transit (day < 10)
    and codes created today.
    """
    return await service.stats()
