"""
Operations schemas: retention sweep summary and health report.
"""

from datetime import datetime
from typing import Dict, Optional

from trackfy.app.schemas.tracking import CamelModel


class SweepSummary(CamelModel):
    """Outcome of one retention sweep."""
    success: bool = True
    removed_codes: int = 0
    removed_generations: int = 0
    remaining_codes: int = 0
    remaining_generations: int = 0
    error: Optional[str] = None


class CleanupResponse(SweepSummary):
    message: str


class HealthResponse(CamelModel):
    status: str
    app_name: str
    version: str
    timestamp: datetime
    uptime: float
    store_backend: str
    features: Dict[str, object]
