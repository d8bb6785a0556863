from __future__ import annotations

import asyncio
import sqlite3

import pytest
from _fakes import FakeService, wait_until

from geosentinel.engine import SyncEngine
from geosentinel.ingestion.ingest import LocationIngestor
from geosentinel.outbox import OutboxStore
from geosentinel.session import SessionManager
from geosentinel.state.events import CycleOutcome, SyncPhase

_TS = 1_700_000_000_000


def _engine(store: OutboxStore, service: FakeService, *, station: str | None = "station-7", **kwargs: int) -> SyncEngine:
    session = SessionManager(service, lambda: station)
    return SyncEngine(store, session, service, **kwargs)


def _fill(store: OutboxStore, count: int) -> list[int]:
    return [store.insert(1.0, 2.0, _TS + i) for i in range(count)]


@pytest.mark.asyncio
async def test_cycle_uploads_oldest_batch_and_deletes_it(store: OutboxStore, service: FakeService) -> None:
    ids = _fill(store, 25)
    engine = _engine(store, service)

    assert await engine.run_cycle() is CycleOutcome.UPLOADED
    assert service.batches == [ids[:20]]
    assert store.pending_count() == 5

    assert await engine.run_cycle() is CycleOutcome.UPLOADED
    assert service.batches[1] == ids[20:]
    assert store.pending_count() == 0

    assert await engine.run_cycle() is CycleOutcome.NOTHING_PENDING
    assert engine.current_delay_ms == 10_000
    assert service.count("login") == 1


@pytest.mark.asyncio
async def test_failed_upload_keeps_records_and_clears_token(store: OutboxStore, service: FakeService) -> None:
    _fill(store, 10)
    service.upload_should_fail = True
    engine = _engine(store, service)

    assert await engine.run_cycle() is CycleOutcome.UPLOAD_FAILED
    assert store.pending_count() == 10
    assert engine.current_delay_ms == 20_000
    assert engine.status().authenticated is False

    service.upload_should_fail = False
    assert await engine.run_cycle() is CycleOutcome.UPLOADED
    assert service.count("login") == 2
    assert service.tokens_seen == ["token-1", "token-2"]
    assert store.pending_count() == 0
    assert engine.current_delay_ms == 10_000


@pytest.mark.asyncio
async def test_unauthorized_upload_forces_relogin(store: OutboxStore, service: FakeService) -> None:
    _fill(store, 1)
    service.upload_unauthorized = True
    engine = _engine(store, service)

    assert await engine.run_cycle() is CycleOutcome.UPLOAD_FAILED
    service.upload_unauthorized = False
    assert await engine.run_cycle() is CycleOutcome.UPLOADED
    assert service.count("login") == 2


@pytest.mark.asyncio
async def test_backoff_grows_over_consecutive_failures(store: OutboxStore, service: FakeService) -> None:
    _fill(store, 1)
    service.upload_should_fail = True
    engine = _engine(store, service)

    delays = []
    for _ in range(4):
        await engine.run_cycle()
        delays.append(engine.current_delay_ms)
    assert delays == [20_000, 40_000, 60_000, 60_000]
    assert engine.status().consecutive_failures == 4


@pytest.mark.asyncio
async def test_login_failure_skips_upload_and_backs_off(store: OutboxStore, service: FakeService) -> None:
    _fill(store, 3)
    service.login_should_fail = True
    engine = _engine(store, service)

    assert await engine.run_cycle() is CycleOutcome.AUTH_FAILED
    assert service.count("upload_batch") == 0
    assert store.pending_count() == 3
    assert engine.current_delay_ms == 20_000


@pytest.mark.asyncio
async def test_missing_station_is_reported_without_login(store: OutboxStore, service: FakeService) -> None:
    _fill(store, 3)
    engine = _engine(store, service, station=None)

    assert await engine.run_cycle() is CycleOutcome.NOT_CONFIGURED
    assert service.count("login") == 0
    assert store.pending_count() == 3
    assert engine.status().last_error == "Station identifier is not configured"


@pytest.mark.asyncio
async def test_empty_outbox_still_authenticates(store: OutboxStore, service: FakeService) -> None:
    engine = _engine(store, service)

    assert await engine.run_cycle() is CycleOutcome.NOTHING_PENDING
    assert service.count("login") == 1
    assert service.count("upload_batch") == 0


@pytest.mark.asyncio
async def test_overlapping_cycle_is_skipped(store: OutboxStore, service: FakeService) -> None:
    _fill(store, 2)
    service.upload_gate = asyncio.Event()
    engine = _engine(store, service)

    first = asyncio.create_task(engine.run_cycle())
    await wait_until(lambda: engine.state.phase is SyncPhase.UPLOADING)

    assert await engine.run_cycle() is CycleOutcome.SKIPPED
    service.upload_gate.set()
    assert await first is CycleOutcome.UPLOADED
    assert service.count("upload_batch") == 1
    assert engine.state.cycles == 1


@pytest.mark.asyncio
async def test_records_inserted_during_upload_are_kept(store: OutboxStore, service: FakeService) -> None:
    ids = _fill(store, 2)
    late: list[int] = []
    service.on_upload = lambda: late.append(store.insert(3.0, 4.0, _TS))
    engine = _engine(store, service)

    assert await engine.run_cycle() is CycleOutcome.UPLOADED
    assert service.batches == [ids]
    assert [r.id for r in store.peek_batch(20)] == late


@pytest.mark.asyncio
async def test_storage_failure_during_cycle_backs_off(store: OutboxStore, service: FakeService) -> None:
    engine = _engine(store, service)
    store.close()

    assert await engine.run_cycle() is CycleOutcome.STORAGE_FAILED
    assert engine.current_delay_ms == 20_000
    assert engine.status().pending_count == -1
    # A storage problem says nothing about the session.
    assert engine.status().authenticated is True


@pytest.mark.asyncio
async def test_timer_drives_cycles_until_stopped(store: OutboxStore, service: FakeService) -> None:
    _fill(store, 45)
    engine = _engine(store, service, batch_size=20, base_delay_ms=10, max_delay_ms=40)

    engine.start(initial_delay=0)
    assert engine.is_running
    await wait_until(lambda: store.pending_count() == 0)
    await engine.stop()

    assert not engine.is_running
    assert [len(batch) for batch in service.batches] == [20, 20, 5]
    uploads = service.count("upload_batch")
    await asyncio.sleep(0.05)
    assert service.count("upload_batch") == uploads


@pytest.mark.asyncio
async def test_status_reports_pending_and_phase(store: OutboxStore, service: FakeService) -> None:
    _fill(store, 4)
    engine = _engine(store, service)

    status = engine.status()
    assert status.phase is SyncPhase.IDLE
    assert status.pending_count == 4
    assert status.current_delay_ms == 10_000
    assert status.last_success_at is None


@pytest.mark.asyncio
async def test_unreadable_row_reports_storage_failure(store: OutboxStore, service: FakeService) -> None:
    with sqlite3.connect(store.path) as conn:
        conn.execute("INSERT INTO locations (latitude, longitude, timestamp) VALUES (1.0, 2.0, 0)")
    conn.close()
    engine = _engine(store, service)

    assert await engine.run_cycle() is CycleOutcome.STORAGE_FAILED
    assert service.count("upload_batch") == 0
    assert engine.status().authenticated is True


@pytest.mark.asyncio
async def test_rejected_timestamp_does_not_block_later_records(store: OutboxStore, service: FakeService) -> None:
    session = SessionManager(service, lambda: "station-7")
    ingestor = LocationIngestor(store, session, service, immediate_upload=False)
    with pytest.raises(ValueError):
        await ingestor.ingest(1.0, 2.0, captured_at=0)
    ids = [await ingestor.ingest(1.0, 2.0, captured_at=_TS + i) for i in range(5)]
    engine = SyncEngine(store, session, service)

    assert await engine.run_cycle() is CycleOutcome.UPLOADED
    assert service.batches == [ids]
    assert store.pending_count() == 0
