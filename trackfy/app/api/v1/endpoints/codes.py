"""
Tracking Code API Endpoints.

Public lookup by tracking code plus the admin operations to list, create
and delete codes.
"""

from fastapi import APIRouter, Body, Depends, Path

from trackfy.app.core.dependencies import get_tracking_service
from trackfy.app.schemas.tracking import (
    CodesResponse, CreateCodesRequest, CreateCodesResponse, DeleteCodeResponse,
    DeleteCodesRequest, DeleteCodesResponse, HistoryResponse, TrackingRecord,
)
from trackfy.app.services.tracking_service import TrackingService

router = APIRouter(prefix="/codes", tags=["Tracking Codes"])


@router.get("", response_model=CodesResponse)
async def list_codes(service: TrackingService = Depends(get_tracking_service)):
    """List every tracking code with its current status."""
    return CodesResponse(codes=await service.list_records())


@router.get("/recent", response_model=CodesResponse)
async def list_recent_codes(service: TrackingService = Depends(get_tracking_service)):
    """Codes created in the last 30 minutes."""
    return CodesResponse(codes=await service.list_recent())


@router.get("/{code}", response_model=TrackingRecord)
async def get_code(
    code: str = Path(..., description="Tracking code, case-insensitive"),
    service: TrackingService = Depends(get_tracking_service)
):
    """
    Find a tracking code.

    Returns 404 if the code does not exist.
    """
    return await service.find_by_code(code)


@router.get("/{code}/history", response_model=HistoryResponse)
async def get_code_history(
    code: str = Path(..., description="Tracking code, case-insensitive"),
    service: TrackingService = Depends(get_tracking_service)
):
    """Stage history of a code, newest first."""
    return HistoryResponse(history=await service.history(code))


@router.post("", response_model=CreateCodesResponse)
async def create_codes(
    payload: CreateCodesRequest = Body(...),
    service: TrackingService = Depends(get_tracking_service)
):
    """
    Generate one tracking code per destination city.

    All codes of a request belong to one generation.
    """
    generation = await service.create_batch(payload.cities)
    return CreateCodesResponse(
        message=f"{generation.total_codes} código(s) gerado(s) com sucesso!",
        generation=generation,
    )


@router.delete("/{record_id}", response_model=DeleteCodeResponse)
async def delete_code(
    record_id: str = Path(..., description="Record ID"),
    service: TrackingService = Depends(get_tracking_service)
):
    """Delete one code by record ID, removing it from its generation."""
    deleted = await service.delete_record(record_id)
    return DeleteCodeResponse(
        message=f"Código {deleted.code} deletado com sucesso!",
        deleted_code=deleted,
    )


@router.delete("", response_model=DeleteCodesResponse)
async def delete_codes(
    payload: DeleteCodesRequest = Body(...),
    service: TrackingService = Depends(get_tracking_service)
):
    """Delete several codes by record ID."""
    deleted = await service.delete_records(payload.ids)
    return DeleteCodesResponse(
        message=f"{len(deleted)} código(s) deletado(s) com sucesso!",
        deleted_codes=deleted,
        deleted_count=len(deleted),
    )
