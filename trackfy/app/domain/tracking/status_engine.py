"""
Status Engine (Domain Logic).

Maps elapsed wall-clock days since creation onto the stage table and
builds the stage history of a record. Nothing here raises on bad dates:
an unusable creation instant degrades to the day-0 stage stamped "now".
"""

from datetime import datetime, timedelta
from typing import Iterator, List, Optional, Union
import logging

from trackfy.app.core.clock import Clock, SystemClock, ensure_aware, parse_instant
from trackfy.app.core.config import settings
from trackfy.app.domain.tracking.stages import DELIVERED_DAY, FIRST_DAY, clamp_day, stage_for
from trackfy.app.domain.tracking.timestamps import TimestampSynthesizer
from trackfy.app.schemas.tracking import TrackingRecord, TrackingStatus

logger = logging.getLogger("trackfy.status")

ONE_DAY = timedelta(days=1)


def default_status(now: datetime) -> TrackingStatus:
    """Day-0 status used for healing and for unusable creation dates."""
    stage = stage_for(FIRST_DAY)
    return TrackingStatus(day=stage.day, status=stage.status, description=stage.description, timestamp=now)


class StatusEngine:

    def __init__(
        self,
        clock: Optional[Clock] = None,
        synthesizer: Optional[TimestampSynthesizer] = None,
        retention_days: int = None,
    ):
        self.clock = clock or SystemClock()
        self.synthesizer = synthesizer or TimestampSynthesizer(clock=self.clock)
        self.retention = timedelta(days=settings.retention_days if retention_days is None else retention_days)

    def _now(self, now: Optional[datetime]) -> datetime:
        return ensure_aware(now) if now is not None else self.clock.now()

    def current_day(self, created_at: Union[datetime, str, None], now: Optional[datetime] = None) -> Optional[int]:
        """Clamped whole days elapsed since creation, or None for unusable dates."""
        created = parse_instant(created_at)
        if created is None:
            return None
        elapsed = self._now(now) - created
        return clamp_day(elapsed // ONE_DAY)

    def build_status(
        self,
        created_at: Union[datetime, str, None],
        city: Optional[str],
        day: int,
        now: Optional[datetime] = None,
    ) -> TrackingStatus:
        now = self._now(now)
        stage = stage_for(day)
        return TrackingStatus(
            day=stage.day,
            status=stage.status,
            description=stage.describe(city),
            timestamp=self.synthesizer.synthesize(created_at, stage.day, now=now),
        )

    def compute_current_status(
        self,
        created_at: Union[datetime, str, None],
        city: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> TrackingStatus:
        """
        Current stage of a record created at ``created_at``.

        Args:
            created_at: Creation instant (datetime or ISO-8601 string)
            city: Destination, used in the day 4 and day 5 descriptions
            now: Present moment; read from the clock when omitted

        Returns:
            TrackingStatus with a synthesized timestamp
        """
        now = self._now(now)
        try:
            day = self.current_day(created_at, now)
            if day is None:
                logger.debug("Unparseable createdAt %r, defaulting to day 0", created_at)
                return default_status(now)
            return self.build_status(created_at, city, day, now)
        except Exception:
            logger.exception("Failed to compute status for createdAt %r", created_at)
            return default_status(now)

    def iter_history(self, record: TrackingRecord, now: Optional[datetime] = None) -> Iterator[TrackingStatus]:
        """Stage entries from the current day down to day 0."""
        now = self._now(now)
        current = self.compute_current_status(record.created_at, record.city, now).day
        for day in range(current, FIRST_DAY - 1, -1):
            try:
                yield self.build_status(record.created_at, record.city, day, now)
            except Exception:
                logger.exception("Failed to build history entry %s for %s", day, record.code)

    def compute_history(self, record: TrackingRecord, now: Optional[datetime] = None) -> List[TrackingStatus]:
        """Full history, newest first. Timestamps may differ between calls."""
        return list(self.iter_history(record, now))

    def with_current_status(self, record: TrackingRecord, now: Optional[datetime] = None) -> TrackingRecord:
        """Copy of ``record`` with a freshly computed status cache."""
        status = self.compute_current_status(record.created_at, record.city, now)
        return record.model_copy(update={"current_status": status})

    def is_delivered(self, record: TrackingRecord, now: Optional[datetime] = None) -> bool:
        return self.current_day(record.created_at, now) == DELIVERED_DAY

    def is_expired(self, record: TrackingRecord, now: Optional[datetime] = None) -> bool:
        """Delivered and at least ``retention`` old. Unusable dates never expire."""
        now = self._now(now)
        created = parse_instant(record.created_at)
        if created is None:
            return False
        return self.is_delivered(record, now) and created <= now - self.retention
