from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from _fakes import FakeService

from geosentinel.outbox import OutboxStore


@pytest.fixture
def store(tmp_path: Path) -> Iterator[OutboxStore]:
    outbox = OutboxStore(tmp_path / "local.db")
    yield outbox
    outbox.close()


@pytest.fixture
def service() -> FakeService:
    return FakeService()
