from __future__ import annotations

import asyncio

import pytest
from _fakes import FakeService

from geosentinel.exceptions import SentinelConfigError
from geosentinel.session import SessionManager


@pytest.mark.asyncio
async def test_ensure_authenticated_logs_in_once_and_reuses_token(service: FakeService) -> None:
    session = SessionManager(service, lambda: "station-7")

    assert await session.ensure_authenticated() is True
    assert await session.ensure_authenticated() is True
    assert service.count("login") == 1
    assert service.stations_seen == ["station-7"]
    assert session.token == "token-1"
    assert session.is_authenticated


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_login(service: FakeService) -> None:
    service.login_gate = asyncio.Event()
    session = SessionManager(service, lambda: "station-7")

    waiters = [asyncio.create_task(session.ensure_authenticated()) for _ in range(3)]
    await asyncio.sleep(0)
    service.login_gate.set()
    results = await asyncio.gather(*waiters)

    assert results == [True, True, True]
    assert service.count("login") == 1
    assert session.login_attempts == 1


@pytest.mark.asyncio
async def test_missing_station_raises_without_network_call(service: FakeService) -> None:
    session = SessionManager(service, lambda: None)

    with pytest.raises(SentinelConfigError):
        await session.ensure_authenticated()
    assert service.count("login") == 0


@pytest.mark.asyncio
async def test_login_failure_returns_false_and_retries_next_time(service: FakeService) -> None:
    service.login_should_fail = True
    session = SessionManager(service, lambda: "station-7")

    assert await session.ensure_authenticated() is False
    assert session.token is None

    service.login_should_fail = False
    assert await session.ensure_authenticated() is True
    assert service.count("login") == 2


@pytest.mark.asyncio
async def test_invalidate_forces_fresh_login(service: FakeService) -> None:
    session = SessionManager(service, lambda: "station-7")
    await session.ensure_authenticated()

    session.invalidate()
    assert session.token is None
    assert await session.ensure_authenticated() is True
    assert session.token == "token-2"


@pytest.mark.asyncio
async def test_station_is_read_at_login_time(service: FakeService) -> None:
    station: list[str | None] = [None]
    session = SessionManager(service, lambda: station[0])

    with pytest.raises(SentinelConfigError):
        await session.ensure_authenticated()

    station[0] = "station-9"
    assert await session.ensure_authenticated() is True
    assert service.stations_seen == ["station-9"]


@pytest.mark.asyncio
async def test_cancelled_waiter_does_not_abort_shared_login(service: FakeService) -> None:
    service.login_gate = asyncio.Event()
    session = SessionManager(service, lambda: "station-7")

    first = asyncio.create_task(session.ensure_authenticated())
    second = asyncio.create_task(session.ensure_authenticated())
    await asyncio.sleep(0)
    first.cancel()
    service.login_gate.set()

    assert await second is True
    assert session.is_authenticated
    assert service.count("login") == 1


@pytest.mark.asyncio
async def test_unexpected_login_error_returns_false(service: FakeService) -> None:
    service.login_exception = UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")
    session = SessionManager(service, lambda: "station-7")

    assert await session.ensure_authenticated() is False
    assert session.token is None

    service.login_exception = None
    assert await session.ensure_authenticated() is True
