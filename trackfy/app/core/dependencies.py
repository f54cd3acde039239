"""
Service dependencies for FastAPI.

One clock, store, status engine and sweeper per process, handed to the
endpoints through ``Depends`` so tests can swap them with
``app.dependency_overrides``.
"""

from functools import lru_cache

from fastapi import Depends

from trackfy.app.core.clock import Clock, SystemClock
from trackfy.app.core.config import settings
from trackfy.app.domain.tracking.status_engine import StatusEngine
from trackfy.app.services.record_store import RecordStore, build_store
from trackfy.app.services.retention import RetentionSweeper
from trackfy.app.services.tracking_service import TrackingService


@lru_cache
def get_clock() -> Clock:
    return SystemClock()


@lru_cache
def get_store() -> RecordStore:
    return build_store(settings, clock=get_clock())


def get_status_engine(clock: Clock = Depends(get_clock)) -> StatusEngine:
    return StatusEngine(clock=clock)


def get_tracking_service(
    store: RecordStore = Depends(get_store),
    engine: StatusEngine = Depends(get_status_engine),
) -> TrackingService:
    return TrackingService(store=store, engine=engine)


def get_sweeper(
    store: RecordStore = Depends(get_store),
    engine: StatusEngine = Depends(get_status_engine),
) -> RetentionSweeper:
    return RetentionSweeper(store=store, engine=engine)
