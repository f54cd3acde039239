"""
Validated decode of the persisted tracking document.

Whatever is on disk (or in the document row) is turned into typed,
invariant-respecting records here, once. Missing or malformed fields get
the documented defaults:

- identifiers, code, city, generation id: ``""``
- instants (createdAt, status timestamp): the load instant
- status: the day-0 status stamped with the load instant
- collections: ``[]``
- totalCodes: ``len(codes)``
"""

from datetime import datetime
from typing import Any, List, Tuple
import logging

from pydantic import ValidationError

from trackfy.app.core.clock import parse_instant
from trackfy.app.domain.tracking.status_engine import default_status
from trackfy.app.schemas.tracking import Generation, TrackingDocument, TrackingRecord, TrackingStatus

logger = logging.getLogger("trackfy.healing")


class Healer:
    """Decodes raw JSON into a TrackingDocument, counting every healed field."""

    def __init__(self, now: datetime):
        self.now = now
        self.healed = 0

    def _note(self, what: str, value: Any) -> None:
        self.healed += 1
        logger.debug("Healed %s (was %r)", what, value)

    def text(self, raw: dict, key: str, optional: bool = False) -> str:
        value = raw.get(key)
        if isinstance(value, str):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            self._note(key, value)
            return str(value)
        if value is not None or not optional:
            self._note(key, value)
        return ""

    def instant(self, raw: dict, key: str) -> datetime:
        value = raw.get(key)
        parsed = parse_instant(value)
        if parsed is None:
            self._note(key, value)
            return self.now
        return parsed

    def items(self, raw: Any, key: str) -> List[Any]:
        value = raw.get(key) if isinstance(raw, dict) else None
        if isinstance(value, list):
            return value
        if value is not None:
            self._note(key, type(value).__name__)
        return []

    def status(self, raw: Any) -> TrackingStatus:
        if not isinstance(raw, dict):
            self._note("currentStatus", raw)
            return default_status(self.now)
        try:
            return TrackingStatus(
                day=raw.get("day"),
                status=raw.get("status"),
                description=raw.get("description"),
                timestamp=self.instant(raw, "timestamp"),
            )
        except ValidationError:
            self._note("currentStatus", raw)
            return default_status(self.now)

    def record(self, raw: Any) -> TrackingRecord:
        if not isinstance(raw, dict):
            self._note("record", raw)
            raw = {}
        return TrackingRecord(
            id=self.text(raw, "id"),
            code=self.text(raw, "code"),
            city=self.text(raw, "city"),
            created_at=self.instant(raw, "createdAt"),
            generation_id=self.text(raw, "generationId", optional=True),
            current_status=self.status(raw.get("currentStatus")),
        )

    def generation(self, raw: Any) -> Generation:
        if not isinstance(raw, dict):
            self._note("generation", raw)
            raw = {}
        codes = [self.record(item) for item in self.items(raw, "codes")]
        total = raw.get("totalCodes")
        if total != len(codes):
            self._note("totalCodes", total)
        return Generation(
            id=self.text(raw, "id"),
            created_at=self.instant(raw, "createdAt"),
            codes=codes,
            total_codes=len(codes),
        )

    def document(self, raw: Any) -> TrackingDocument:
        if not isinstance(raw, dict):
            self._note("document", type(raw).__name__)
            raw = {}
        # Older documents keep records under "codes".
        record_key = "records" if "records" in raw else "codes"
        return TrackingDocument(
            records=[self.record(item) for item in self.items(raw, record_key)],
            generations=[self.generation(item) for item in self.items(raw, "generations")],
        )


def heal_document(raw: Any, now: datetime) -> Tuple[TrackingDocument, int]:
    """
    Decode ``raw`` into a TrackingDocument.

    Returns:
        The healed document and the number of fields that were replaced
    """
    healer = Healer(now)
    document = healer.document(raw)
    if healer.healed:
        logger.warning("Healed %s malformed field(s) while loading tracking data", healer.healed)
    return document, healer.healed
