"""
Record store.

Persists the tracking document (records plus generations) and serializes
every load → mutate → save cycle behind a per-store lock. Two backends:
a JSON file and a single SQL row holding the same document.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar
import asyncio
import json
import logging
import os

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from trackfy.app.core.clock import Clock, SystemClock
from trackfy.app.core.config import Settings
from trackfy.app.core.exceptions import StorageError
from trackfy.app.domain.tracking.state import TrackingState
from trackfy.app.models.tracking_document import TrackingDocumentRow
from trackfy.app.services.healing import heal_document

logger = logging.getLogger("trackfy.store")

T = TypeVar("T")


class RecordStore(ABC):
    """
    Load/save contract shared by all backends.

    ``load`` never raises: read or parse failures come back as an empty
    state. ``save`` reports failure as False.
    """

    backend = "abstract"

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or SystemClock()
        self._lock = asyncio.Lock()

    @abstractmethod
    async def _read(self) -> Optional[Any]:
        """Raw decoded document, or None when nothing was stored yet."""

    @abstractmethod
    async def _write(self, payload: dict) -> None:
        ...

    async def load(self) -> TrackingState:
        try:
            raw = await self._read()
        except Exception:
            logger.exception("Error reading tracking data (%s store)", self.backend)
            return TrackingState()
        if raw is None:
            return TrackingState()
        document, _ = heal_document(raw, self.clock.now())
        return TrackingState.from_document(document)

    async def save(self, state: TrackingState) -> bool:
        records = state.records if isinstance(state.records, list) else []
        generations = state.generations if isinstance(state.generations, list) else []
        payload = TrackingState(records=records, generations=generations).to_document().model_dump(
            mode="json", by_alias=True
        )
        try:
            await self._write(payload)
        except Exception:
            logger.exception("Error writing tracking data (%s store)", self.backend)
            return False
        state.dirty = False
        return True

    async def mutate_atomically(self, mutation: Callable[[TrackingState], T]) -> T:
        """
        Run ``mutation`` against a freshly loaded state under the store lock.

        The state is saved only if the mutation marked it dirty. Exceptions
        raised by the mutation abort the cycle without writing.

        Raises:
            StorageError: If the changed state could not be written
        """
        async with self._lock:
            state = await self.load()
            outcome = mutation(state)
            if state.dirty and not await self.save(state):
                raise StorageError()
            return outcome


class JsonFileStore(RecordStore):
    """Whole document in one pretty-printed JSON file."""

    backend = "file"

    def __init__(self, path, clock: Optional[Clock] = None):
        super().__init__(clock)
        self.path = Path(path)

    def _read_sync(self) -> Optional[Any]:
        if not self.path.exists():
            return None
        return json.loads(self.path.read_text(encoding="utf-8"))

    def _write_sync(self, payload: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp, self.path)

    async def _read(self) -> Optional[Any]:
        return await asyncio.to_thread(self._read_sync)

    async def _write(self, payload: dict) -> None:
        await asyncio.to_thread(self._write_sync, payload)


class SqlDocumentStore(RecordStore):
    """Whole document as JSON in one ``tracking_documents`` row."""

    backend = "sql"

    def __init__(
        self,
        session_factory: async_sessionmaker,
        name: str = "default",
        clock: Optional[Clock] = None,
    ):
        super().__init__(clock)
        self.session_factory = session_factory
        self.name = name

    async def _get_row(self, session: AsyncSession) -> Optional[TrackingDocumentRow]:
        result = await session.execute(
            select(TrackingDocumentRow).where(TrackingDocumentRow.name == self.name)
        )
        return result.scalar_one_or_none()

    async def _read(self) -> Optional[Any]:
        async with self.session_factory() as session:
            row = await self._get_row(session)
            return row.payload if row else None

    async def _write(self, payload: dict) -> None:
        async with self.session_factory() as session:
            row = await self._get_row(session)
            if row is None:
                session.add(TrackingDocumentRow(name=self.name, payload=payload))
            else:
                row.payload = payload
            await session.commit()


def build_store(config: Settings, clock: Optional[Clock] = None) -> RecordStore:
    """Store selected by ``store_backend``."""
    if config.store_backend == "sql":
        from trackfy.app.db.session import AsyncSessionLocal
        return SqlDocumentStore(AsyncSessionLocal, clock=clock)
    if config.store_backend != "file":
        logger.warning("Unknown store backend %r, using file store", config.store_backend)
    return JsonFileStore(config.data_file, clock=clock)
