"""
Time sources.

Every derivation in the simulation reads "now" from a Clock so tests can
pin the present moment instead of racing the wall clock.
"""

from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import logging

from trackfy.app.core.config import settings

logger = logging.getLogger("trackfy.clock")


class Clock:
    """Source of the current instant plus the local zone for calendar math."""

    def __init__(self, tz: Optional[tzinfo] = None):
        self.tz = tz or load_timezone(settings.timezone)

    def now(self) -> datetime:
        raise NotImplementedError

    def local(self, instant: datetime) -> datetime:
        return instant.astimezone(self.tz)


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """Clock frozen at a given instant; ``advance`` moves it forward."""

    def __init__(self, instant: datetime, tz: Optional[tzinfo] = None):
        super().__init__(tz)
        self._now = ensure_aware(instant)

    def now(self) -> datetime:
        return self._now

    def set(self, instant: datetime) -> None:
        self._now = ensure_aware(instant)

    def advance(self, **delta) -> datetime:
        self._now = self._now + timedelta(**delta)
        return self._now


def load_timezone(name: str) -> tzinfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r, falling back to UTC", name)
        return timezone.utc


def ensure_aware(instant: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant


def parse_instant(value: Union[datetime, str, None]) -> Optional[datetime]:
    """
    Parse an ISO-8601 instant into an aware UTC datetime.

    Returns None for anything that is not a usable instant. A trailing
    ``Z`` is accepted.
    """
    if isinstance(value, datetime):
        return ensure_aware(value).astimezone(timezone.utc)
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return ensure_aware(parsed).astimezone(timezone.utc)


def isoformat(instant: datetime) -> str:
    """Render an instant the way the persisted document stores it."""
    utc = ensure_aware(instant).astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")
