"""
Tests for the record store: healing on load, saving, and the
load → mutate → save cycle for both backends.
"""

import asyncio
import json
from datetime import datetime, timedelta, timezone

import pytest

from trackfy.app.core.exceptions import StorageError
from trackfy.app.services.healing import heal_document
from trackfy.app.services.tracking_service import TrackingService
from conftest import NOW


def legacy_document():
    """Shape written by the previous server: records under "codes"."""
    record = {
        "id": "a1",
        "code": "BR111111111AA",
        "city": "Recife",
        "createdAt": "2026-10-10T12:00:00.000Z",
        "generationId": "g1",
        "currentStatus": {
            "day": 3,
            "status": "Preparando para sair",
            "description": "Objeto sendo preparado para envio",
            "timestamp": "2026-10-13T15:00:00.000Z",
        },
    }
    return {
        "codes": [record],
        "generations": [{"id": "g1", "createdAt": "2026-10-10T12:00:00.000Z", "codes": [record], "totalCodes": 1}],
    }


def test_heal_fills_missing_fields_with_defaults():
    document, healed = heal_document({"records": [{"code": "BR111111111AA"}]}, NOW)

    record = document.records[0]
    assert record.id == ""
    assert record.city == ""
    assert record.generation_id == ""
    assert record.created_at == NOW
    assert record.current_status.day == 0
    assert record.current_status.status == "Despachado"
    assert record.current_status.timestamp == NOW
    assert healed >= 4


def test_heal_accepts_legacy_codes_key():
    document, healed = heal_document(legacy_document(), NOW)

    assert [r.code for r in document.records] == ["BR111111111AA"]
    assert document.records[0].created_at == datetime(2026, 10, 10, 12, tzinfo=timezone.utc)
    assert document.records[0].current_status.day == 3
    assert document.generations[0].total_codes == 1
    assert healed == 0


def test_heal_replaces_malformed_values():
    raw = {
        "records": [
            {"id": 7, "code": None, "city": ["x"], "createdAt": "yesterday", "currentStatus": {"day": 42}},
            "garbage",
        ],
        "generations": [
            {"id": "g1", "codes": "not-a-list", "totalCodes": 5},
            {"id": "g2", "createdAt": "2026-10-01T00:00:00Z", "codes": [{"id": "b", "code": "BR2"}]},
        ],
    }

    document, healed = heal_document(raw, NOW)

    first = document.records[0]
    assert first.id == "7"
    assert first.code == ""
    assert first.city == ""
    assert first.created_at == NOW
    assert first.current_status.day == 0
    assert document.records[1].id == ""
    assert document.generations[0].codes == []
    assert document.generations[0].total_codes == 0
    assert document.generations[0].created_at == NOW
    assert document.generations[1].total_codes == 1
    assert healed > 0


@pytest.mark.parametrize("raw", [None, [], "text", {"records": "nope", "generations": 3}])
def test_heal_non_document_yields_empty_collections(raw):
    document, _ = heal_document(raw, NOW)

    assert document.records == []
    assert document.generations == []


async def test_missing_file_loads_empty(file_store):
    state = await file_store.load()

    assert state.records == []
    assert state.generations == []


async def test_corrupt_file_loads_empty(file_store, data_file):
    data_file.parent.mkdir(parents=True)
    data_file.write_text("{ this is not json", encoding="utf-8")

    state = await file_store.load()

    assert state.records == [] and state.generations == []


async def test_file_store_writes_document_layout(file_store, data_file):
    data_file.parent.mkdir(parents=True)
    data_file.write_text(json.dumps(legacy_document()), encoding="utf-8")

    state = await file_store.load()
    assert await file_store.save(state) is True

    saved = json.loads(data_file.read_text(encoding="utf-8"))
    assert set(saved) == {"records", "generations"}
    assert saved["records"][0]["code"] == "BR111111111AA"
    assert saved["records"][0]["createdAt"].startswith("2026-10-10T12:00:00")
    assert saved["generations"][0]["totalCodes"] == 1


async def test_save_reports_io_failure(file_store, mocker):
    mocker.patch.object(file_store, "_write_sync", side_effect=OSError("disk full"))

    assert await file_store.save(await file_store.load()) is False


async def test_mutation_without_changes_does_not_write(file_store, data_file):
    result = await file_store.mutate_atomically(lambda state: len(state.records))

    assert result == 0
    assert not data_file.exists()


async def test_failed_write_raises_storage_error(file_store, mocker):
    mocker.patch.object(file_store, "_write_sync", side_effect=OSError("read-only"))

    def touch(state):
        state.mark_dirty()

    with pytest.raises(StorageError):
        await file_store.mutate_atomically(touch)


async def test_mutation_errors_abort_without_writing(file_store, data_file):
    def explode(state):
        state.mark_dirty()
        raise ValueError("boom")

    with pytest.raises(ValueError):
        await file_store.mutate_atomically(explode)
    assert not data_file.exists()


async def test_sql_store_round_trip(sql_store):
    assert (await sql_store.load()).records == []

    state = await sql_store.load()
    document, _ = heal_document(legacy_document(), NOW)
    state.records, state.generations = document.records, document.generations
    assert await sql_store.save(state) is True

    # Second save updates the same row.
    state.records = []
    assert await sql_store.save(state) is True

    reloaded = await sql_store.load()
    assert reloaded.records == []
    assert [g.id for g in reloaded.generations] == ["g1"]


async def test_concurrent_batches_are_not_lost(sql_store, engine):
    service = TrackingService(store=sql_store, engine=engine)

    await asyncio.gather(*(service.create_batch([f"Cidade {i}"]) for i in range(10)))

    state = await sql_store.load()
    assert len(state.records) == 10
    assert len(state.generations) == 10
    assert all(g.total_codes == 1 for g in state.generations)


async def test_concurrent_file_mutations_are_serialized(file_store, engine):
    service = TrackingService(store=file_store, engine=engine)
    generation = await service.create_batch(["A", "B", "C", "D"])
    ids = [r.id for r in generation.codes]

    await asyncio.gather(
        service.create_batch(["E"]),
        service.delete_record(ids[0]),
        service.delete_records(ids[1:3]),
    )

    state = await file_store.load()
    assert sorted(r.city for r in state.records) == ["D", "E"]
    assert sorted(g.total_codes for g in state.generations) == [1, 1]
