"""
Tracking Service.

Operations behind the tracking API: queries with freshly computed
statuses, batch creation, cascading deletes and dashboard statistics.
Every write goes through ``RecordStore.mutate_atomically``.
"""

from datetime import datetime, timedelta
from typing import Any, Iterable, List, Optional
import logging
import uuid

from trackfy.app.core.config import settings
from trackfy.app.core.exceptions import InvalidInputError, ResourceNotFoundError
from trackfy.app.domain.tracking.code_generator import CodeGenerator
from trackfy.app.domain.tracking.stages import DELIVERED_DAY
from trackfy.app.domain.tracking.state import TrackingState
from trackfy.app.domain.tracking.status_engine import StatusEngine
from trackfy.app.schemas.tracking import Generation, StatsResponse, TrackingRecord, TrackingStatus
from trackfy.app.services.record_store import RecordStore

logger = logging.getLogger("trackfy.tracking")


def new_id() -> str:
    return uuid.uuid4().hex


class TrackingService:

    def __init__(
        self,
        store: RecordStore,
        engine: StatusEngine,
        code_generator: Optional[CodeGenerator] = None,
        recent_window_minutes: int = None,
    ):
        self.store = store
        self.engine = engine
        self.clock = engine.clock
        self.code_generator = code_generator or CodeGenerator()
        self.recent_window = timedelta(
            minutes=settings.recent_window_minutes if recent_window_minutes is None else recent_window_minutes
        )

    def _refresh(self, records: Iterable[TrackingRecord], now: datetime) -> List[TrackingRecord]:
        return [self.engine.with_current_status(record, now) for record in records]

    # Queries

    async def list_records(self) -> List[TrackingRecord]:
        state = await self.store.load()
        return self._refresh(state.records, self.clock.now())

    async def list_generations(self) -> List[Generation]:
        state = await self.store.load()
        now = self.clock.now()
        return [
            generation.model_copy(update={"codes": self._refresh(generation.codes, now)})
            for generation in state.generations
        ]

    async def list_recent(self) -> List[TrackingRecord]:
        """Records created within the recent window (30 minutes by default)."""
        state = await self.store.load()
        now = self.clock.now()
        cutoff = now - self.recent_window
        recent = [r for r in state.records if r.created_at >= cutoff]
        return self._refresh(recent, now)

    async def find_by_code(self, code: str) -> TrackingRecord:
        """
        Case-insensitive lookup by tracking code.

        Raises:
            InvalidInputError: If the code is blank
            ResourceNotFoundError: If no record carries the code
        """
        wanted = (code or "").strip().upper()
        if not wanted:
            raise InvalidInputError("Invalid tracking code parameter")
        state = await self.store.load()
        found = next((r for r in state.records if r.code and r.code.upper() == wanted), None)
        if found is None:
            raise ResourceNotFoundError("Tracking code", wanted, message="Tracking code not found")
        return self.engine.with_current_status(found)

    async def history(self, code: str) -> List[TrackingStatus]:
        record = await self.find_by_code(code)
        return self.engine.compute_history(record)

    async def stats(self) -> StatsResponse:
        state = await self.store.load()
        now = self.clock.now()
        today = self.clock.local(now).date()

        stats = StatsResponse(total=len(state.records))
        for record in state.records:
            day = self.engine.current_day(record.created_at, now)
            if day == DELIVERED_DAY:
                stats.delivered += 1
            else:
                stats.in_transit += 1
            if self.clock.local(record.created_at).date() == today:
                stats.today_codes += 1
        return stats

    # Mutations

    async def create_batch(self, cities: Optional[List[Any]]) -> Generation:
        """
        Create one generation with a record per usable city.

        Blank and non-string entries are skipped. All records share the
        generation's creation instant and start at day 0.

        Raises:
            InvalidInputError: If no usable city was supplied
            StorageError: If the new batch could not be saved
        """
        if not isinstance(cities, list) or not cities:
            raise InvalidInputError("Cities array is required and must not be empty")
        clean = [c.strip() for c in cities if isinstance(c, str) and c.strip()]
        if not clean:
            raise InvalidInputError("No valid cities provided")

        def add_batch(state: TrackingState) -> Generation:
            now = self.clock.now()
            generation_id = new_id()
            taken = [r.code for r in state.records]
            records = []
            for city in clean:
                code = self.code_generator.generate_unique(taken)
                taken.append(code)
                records.append(TrackingRecord(
                    id=new_id(),
                    code=code,
                    city=city,
                    created_at=now,
                    generation_id=generation_id,
                    current_status=self.engine.compute_current_status(now, city, now),
                ))
            generation = Generation(id=generation_id, created_at=now, codes=records)
            state.add_generation(generation)
            return generation

        generation = await self.store.mutate_atomically(add_batch)
        logger.info("Created generation %s with %s code(s)", generation.id, generation.total_codes)
        return generation

    async def delete_record(self, record_id: str) -> TrackingRecord:
        """
        Delete one record by id, cascading into its generation.

        Raises:
            InvalidInputError: If the id is blank
            ResourceNotFoundError: If no record has the id
        """
        if not isinstance(record_id, str) or not record_id.strip():
            raise InvalidInputError("Invalid code ID parameter")

        def remove(state: TrackingState) -> TrackingRecord:
            target = state.find_by_id(record_id)
            if target is None:
                raise ResourceNotFoundError("Código", record_id, message="Código não encontrado")
            state.remove_ids([record_id])
            return target

        deleted = await self.store.mutate_atomically(remove)
        logger.info("Deleted code %s (id %s)", deleted.code, deleted.id)
        return deleted

    async def delete_records(self, ids: Optional[List[Any]]) -> List[TrackingRecord]:
        """
        Delete every record whose id is listed, cascading into generations.

        Raises:
            InvalidInputError: If ``ids`` is missing or empty, or holds no usable ID
            ResourceNotFoundError: If none of the ids matched
        """
        if not isinstance(ids, list) or not ids:
            raise InvalidInputError("Array de IDs é obrigatório")
        wanted = [i for i in ids if isinstance(i, str) and i]
        if not wanted:
            raise InvalidInputError("Nenhum ID válido fornecido")

        def remove(state: TrackingState) -> List[TrackingRecord]:
            result = state.remove_ids(wanted)
            if not result.removed_records:
                raise ResourceNotFoundError("Códigos", message="Nenhum código encontrado para deletar")
            return result.removed_records

        deleted = await self.store.mutate_atomically(remove)
        logger.info("Deleted %s code(s): %s", len(deleted), ", ".join(r.code for r in deleted))
        return deleted
