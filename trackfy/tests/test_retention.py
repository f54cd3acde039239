"""
Tests for the retention sweep and its scheduler.
"""

import asyncio
from datetime import timedelta

import pytest

from trackfy.app.domain.tracking.state import TrackingState
from trackfy.app.domain.tracking.status_engine import default_status
from trackfy.app.schemas.tracking import Generation, TrackingRecord
from trackfy.app.services.retention import RetentionScheduler, RetentionSweeper, SWEEP_LOCK_KEY
from conftest import NOW


def record(record_id, age, generation_id=""):
    created = NOW - age
    return TrackingRecord(
        id=record_id,
        code=f"BR00000000{record_id[-1]}AA",
        city="Recife",
        created_at=created,
        generation_id=generation_id,
        current_status=default_status(created),
    )


async def seed(store, records, generations):
    assert await store.save(TrackingState(records=records, generations=generations))


@pytest.fixture
def sweeper(file_store, engine):
    return RetentionSweeper(store=file_store, engine=engine)


@pytest.fixture
async def seeded_store(file_store):
    a = record("r1", timedelta(days=41), "g1")
    b = record("r2", timedelta(days=41), "g2")
    c = record("r3", timedelta(days=3), "g2")
    d = record("r4", timedelta(days=20))
    await seed(
        file_store,
        [a, b, c, d],
        [
            Generation(id="g1", created_at=a.created_at, codes=[a], total_codes=1),
            Generation(id="g2", created_at=b.created_at, codes=[b, c], total_codes=2),
        ],
    )
    return file_store


async def test_sweep_removes_only_expired_delivered_records(seeded_store, sweeper):
    summary = await sweeper.sweep()

    assert summary.success is True
    assert summary.removed_codes == 2
    assert summary.removed_generations == 1
    assert summary.remaining_codes == 2
    assert summary.remaining_generations == 1

    state = await seeded_store.load()
    assert sorted(r.id for r in state.records) == ["r3", "r4"]
    assert [g.id for g in state.generations] == ["g2"]
    assert [r.id for r in state.generations[0].codes] == ["r3"]
    assert state.generations[0].total_codes == 1


async def test_second_sweep_is_a_no_op(seeded_store, sweeper, mocker):
    await sweeper.sweep()
    save = mocker.spy(seeded_store, "save")

    summary = await sweeper.sweep()

    assert summary.removed_codes == 0
    assert summary.removed_generations == 0
    assert summary.remaining_codes == 2
    save.assert_not_called()


async def test_delivered_record_expires_once_retention_passes(file_store, sweeper, clock):
    # Delivered today, created exactly ten days ago.
    fresh = record("r1", timedelta(days=10), "g1")
    await seed(file_store, [fresh], [Generation(id="g1", created_at=fresh.created_at, codes=[fresh], total_codes=1)])

    assert (await sweeper.sweep()).removed_codes == 0

    clock.advance(days=21)
    summary = await sweeper.sweep()

    assert summary.removed_codes == 1
    assert summary.removed_generations == 1
    state = await file_store.load()
    assert state.records == [] and state.generations == []


async def test_record_exactly_at_retention_age_is_removed(file_store, sweeper, engine):
    boundary = record("r1", timedelta(days=30), "g1")
    await seed(
        file_store,
        [boundary],
        [Generation(id="g1", created_at=boundary.created_at, codes=[boundary], total_codes=1)],
    )
    assert engine.current_day(boundary.created_at) == 10

    summary = await sweeper.sweep()

    assert summary.removed_codes == 1
    assert summary.removed_generations == 1
    assert (await file_store.load()).records == []


async def test_sweep_drops_already_empty_generations(file_store, sweeper):
    kept = record("r1", timedelta(days=2), "g1")
    await seed(
        file_store,
        [kept],
        [
            Generation(id="g1", created_at=kept.created_at, codes=[kept], total_codes=1),
            Generation(id="g-empty", created_at=NOW, codes=[], total_codes=0),
        ],
    )

    summary = await sweeper.sweep()

    assert summary.removed_codes == 0
    assert summary.removed_generations == 1
    assert [g.id for g in (await file_store.load()).generations] == ["g1"]


async def test_storage_failure_is_reported_not_raised(seeded_store, sweeper, mocker):
    mocker.patch.object(seeded_store, "_write_sync", side_effect=OSError("disk full"))

    summary = await sweeper.sweep()

    assert summary.success is False
    assert summary.error == "Erro ao salvar alterações"


async def test_scheduler_without_redis_always_sweeps(seeded_store, sweeper):
    scheduler = RetentionScheduler(sweeper, initial_delay=0, interval=3600)

    first = await scheduler.run_once()
    second = await scheduler.run_once()

    assert first.removed_codes == 2
    assert second.removed_codes == 0
    assert scheduler.runs == 2


async def test_scheduler_lease_allows_one_worker(seeded_store, sweeper, redis_client):
    worker_a = RetentionScheduler(sweeper, redis=redis_client, lock_ttl=60)
    worker_b = RetentionScheduler(sweeper, redis=redis_client, lock_ttl=60)

    assert (await worker_a.run_once()).removed_codes == 2
    assert await worker_b.run_once() is None
    assert SWEEP_LOCK_KEY in redis_client.store


async def test_scheduler_sweeps_locally_when_redis_fails(seeded_store, sweeper, redis_client):
    redis_client.fail = True
    scheduler = RetentionScheduler(sweeper, redis=redis_client)

    summary = await scheduler.run_once()

    assert summary.removed_codes == 2


async def wait_for_runs(scheduler, count):
    for _ in range(200):
        if scheduler.runs >= count:
            return
        await asyncio.sleep(0.01)
    raise AssertionError(f"scheduler ran {scheduler.runs} times, expected {count}")


async def test_scheduler_starts_and_stops(seeded_store, sweeper):
    scheduler = RetentionScheduler(sweeper, initial_delay=0, interval=3600)

    scheduler.start()
    assert scheduler.running
    await wait_for_runs(scheduler, 1)
    await scheduler.stop()

    assert not scheduler.running
    assert len((await seeded_store.load()).records) == 2


async def test_scheduler_survives_failing_runs(sweeper, mocker):
    mocker.patch.object(sweeper, "sweep", side_effect=RuntimeError("boom"))
    scheduler = RetentionScheduler(sweeper, initial_delay=0, interval=0.01)

    scheduler.start()
    await wait_for_runs(scheduler, 3)
    await scheduler.stop()

    assert sweeper.sweep.call_count >= 3
