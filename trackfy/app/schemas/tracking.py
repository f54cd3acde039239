"""
Tracking Pydantic schemas.

Defines the tracking record, its status snapshot, generations (batches),
and the request and response envelopes of the tracking API. Field names
travel as camelCase on the wire and in the persisted document.
"""

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Any, List


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True


class TrackingStatus(CamelModel):
    """Stage snapshot for one simulated day."""
    day: int = Field(0, ge=0, le=10)
    status: str
    description: str
    timestamp: datetime


class TrackingRecord(CamelModel):
    """A single simulated parcel."""
    id: str = ""
    code: str = ""
    city: str = ""
    created_at: datetime
    generation_id: str = ""
    # Cache only; readers recompute it.
    current_status: TrackingStatus


class Generation(CamelModel):
    """A batch of records created by one request."""
    id: str = ""
    created_at: datetime
    codes: List[TrackingRecord] = Field(default_factory=list)
    total_codes: int = 0


class TrackingDocument(CamelModel):
    """Persisted layout: both collections in a single document."""
    records: List[TrackingRecord] = Field(default_factory=list)
    generations: List[Generation] = Field(default_factory=list)


# Requests

class CreateCodesRequest(BaseModel):
    """Destination cities, one record per non-blank entry."""
    cities: Any = None


class DeleteCodesRequest(BaseModel):
    ids: Any = None


# Responses

class CodesResponse(BaseModel):
    codes: List[TrackingRecord]


class GenerationsResponse(BaseModel):
    generations: List[Generation]


class HistoryResponse(BaseModel):
    history: List[TrackingStatus]


class CreateCodesResponse(BaseModel):
    message: str
    generation: Generation


class DeleteCodeResponse(CamelModel):
    message: str
    deleted_code: TrackingRecord


class DeleteCodesResponse(CamelModel):
    message: str
    deleted_codes: List[TrackingRecord]
    deleted_count: int


class StatsResponse(CamelModel):
    """Aggregate counters for the admin dashboard."""
    total: int = 0
    delivered: int = 0
    in_transit: int = 0
    today_codes: int = 0
