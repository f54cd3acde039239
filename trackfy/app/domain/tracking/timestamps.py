"""
Timestamp Synthesizer.

Produces the "last updated" instant shown for a stage. Stage updates land
inside business hours on their calendar date, and no synthesized instant
is ever later than the clock's present moment.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Union
import logging
import random

from trackfy.app.core.clock import Clock, SystemClock, parse_instant
from trackfy.app.core.config import settings

logger = logging.getLogger("trackfy.timestamps")


class TimestampSynthesizer:

    def __init__(
        self,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
        start_hour: int = None,
        end_hour: int = None,
    ):
        self.clock = clock or SystemClock()
        self.rng = rng or random.Random()
        self.start_hour = settings.business_hours_start if start_hour is None else start_hour
        self.end_hour = settings.business_hours_end if end_hour is None else end_hour

    def synthesize(
        self,
        created_at: Union[datetime, str, None],
        day_offset: int,
        now: Optional[datetime] = None,
    ) -> datetime:
        """
        Pick a display instant for ``day_offset`` days after ``created_at``.

        Day 0 is the creation instant itself. Later days get a random
        business-hours time on the target date; on today's date the upper
        bound is the current hour. Anything that would land after ``now``
        becomes ``now``, and so does unusable input.

        Args:
            created_at: Creation instant (datetime or ISO-8601 string)
            day_offset: Stage index, 0..10
            now: Present moment; read from the clock when omitted

        Returns:
            Aware UTC datetime, never later than ``now``
        """
        if now is None:
            now = self.clock.now()

        created = parse_instant(created_at)
        if created is None or not isinstance(day_offset, int) or day_offset < 0:
            logger.debug("Unusable input for synthesis (%r, %r), using now", created_at, day_offset)
            return now

        if day_offset == 0:
            return created if created <= now else now

        target = created + timedelta(days=day_offset)
        if target > now:
            return now

        local_target = self.clock.local(target)
        local_now = self.clock.local(now)

        if local_target.date() == local_now.date():
            upper = min(self.end_hour, local_now.hour)
            if upper < self.start_hour:
                return now
            stamp = self._at_random_time(local_target, self.start_hour, upper)
            return min(stamp, now)

        # Past calendar date: the whole business window already happened.
        return min(self._at_random_time(local_target, self.start_hour, self.end_hour), now)

    def _at_random_time(self, local_day: datetime, low_hour: int, high_hour: int) -> datetime:
        hour = self.rng.randint(low_hour, high_hour)
        minute = self.rng.randint(0, 59)
        stamp = local_day.replace(hour=hour, minute=minute, second=0, microsecond=0)
        return stamp.astimezone(timezone.utc)
