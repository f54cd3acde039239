"""
Retention sweep.

Removes records that reached the delivered stage and were created at
least ``retention_days`` ago, from the top-level list and from every
generation, then drops generations left empty. The scheduler runs the
sweep shortly after startup and then on a fixed interval.
"""

from typing import Optional
import asyncio
import logging

from trackfy.app.core.clock import isoformat
from trackfy.app.core.config import settings
from trackfy.app.core.exceptions import StorageError
from trackfy.app.domain.tracking.state import TrackingState
from trackfy.app.domain.tracking.status_engine import StatusEngine
from trackfy.app.schemas.ops import SweepSummary
from trackfy.app.services.record_store import RecordStore

logger = logging.getLogger("trackfy.retention")

SWEEP_LOCK_KEY = "trackfy:retention:lock"


class RetentionSweeper:

    def __init__(self, store: RecordStore, engine: StatusEngine):
        self.store = store
        self.engine = engine

    def _sweep_state(self, state: TrackingState) -> SweepSummary:
        now = self.engine.clock.now()
        codes_before = len(state.records)
        generations_before = len(state.generations)

        result = state.prune(lambda record: self.engine.is_expired(record, now))

        for record in result.removed_records:
            logger.info("Removing delivered code %s (created %s)", record.code, isoformat(record.created_at))

        summary = SweepSummary(
            removed_codes=len(result.removed_records),
            removed_generations=len(result.removed_generations),
            remaining_codes=len(state.records),
            remaining_generations=len(state.generations),
        )
        if result.changed:
            logger.info(
                "Cleanup removed %s code(s) and %s generation(s); %s/%s codes and %s/%s generations remain",
                summary.removed_codes, summary.removed_generations,
                summary.remaining_codes, codes_before,
                summary.remaining_generations, generations_before,
            )
        else:
            logger.info("No expired delivered codes found")
        return summary

    async def sweep(self) -> SweepSummary:
        """
        Run one sweep and persist the result if anything was removed.

        Never raises; storage failures come back as ``success=False``.
        """
        logger.info("Starting retention cleanup of delivered codes")
        try:
            return await self.store.mutate_atomically(self._sweep_state)
        except StorageError as exc:
            logger.error("Error saving data after cleanup: %s", exc.message)
            return SweepSummary(success=False, error=exc.message)
        except Exception as exc:
            logger.exception("Retention cleanup failed")
            return SweepSummary(success=False, error=str(exc))


class RetentionScheduler:
    """
    Background asyncio task running the sweep on a timer.

    With a Redis client, each run first takes a short-lived lease so only
    one worker process sweeps a shared store per interval. Redis errors
    fall back to sweeping locally.
    """

    def __init__(
        self,
        sweeper: RetentionSweeper,
        initial_delay: float = None,
        interval: float = None,
        redis=None,
        lock_ttl: int = None,
    ):
        self.sweeper = sweeper
        self.initial_delay = settings.cleanup_initial_delay_seconds if initial_delay is None else initial_delay
        self.interval = settings.cleanup_interval_seconds if interval is None else interval
        self.redis = redis
        self.lock_ttl = settings.cleanup_lock_ttl_seconds if lock_ttl is None else lock_ttl
        self.runs = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _acquire_lease(self) -> bool:
        if self.redis is None:
            return True
        try:
            return bool(await self.redis.set(SWEEP_LOCK_KEY, "1", ex=self.lock_ttl, nx=True))
        except Exception as exc:
            logger.warning("Redis unavailable for sweep lease (%s), sweeping locally", exc)
            return True

    async def run_once(self) -> Optional[SweepSummary]:
        if not await self._acquire_lease():
            logger.info("Another worker holds the sweep lease, skipping this run")
            return None
        self.runs += 1
        return await self.sweeper.sweep()

    async def _loop(self) -> None:
        await asyncio.sleep(self.initial_delay)
        while True:
            try:
                await self.run_once()
            except Exception:
                logger.exception("Scheduled cleanup run failed")
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="trackfy-retention")
        logger.info("Automatic cleanup scheduled every %s seconds", self.interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Automatic cleanup stopped")
