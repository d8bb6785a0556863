from __future__ import annotations

from pathlib import Path

import pytest

from geosentinel.config import SentinelConfig, StationFile, default_data_dir
from geosentinel.exceptions import SentinelConfigError


def test_defaults(tmp_path: Path) -> None:
    config = SentinelConfig(data_dir=tmp_path)
    assert config.base_url == "https://backend-1-opx1.onrender.com"
    assert config.batch_size == 20
    assert config.base_delay_ms == 10_000
    assert config.max_delay_ms == 60_000
    assert config.request_timeout == 15.0
    assert config.db_path == tmp_path / "local.db"
    assert config.station_file == tmp_path / "config.json"


def test_trailing_slash_is_stripped(tmp_path: Path) -> None:
    config = SentinelConfig(base_url="http://localhost:8080/", data_dir=str(tmp_path))  # type: ignore[arg-type]
    assert config.base_url == "http://localhost:8080"
    assert config.data_dir == tmp_path


@pytest.mark.parametrize(
    "kwargs",
    [
        {"base_url": "ftp://example.com"},
        {"batch_size": 0},
        {"base_delay_ms": 0},
        {"base_delay_ms": 5_000, "max_delay_ms": 1_000},
        {"request_timeout": 0},
        {"startup_delay": -1},
    ],
)
def test_invalid_values_raise(tmp_path: Path, kwargs: dict[str, object]) -> None:
    with pytest.raises(SentinelConfigError):
        SentinelConfig(data_dir=tmp_path, **kwargs)  # type: ignore[arg-type]


def test_from_env_reads_variables(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("GEOSENTINEL_BASE_URL", "http://127.0.0.1:9000")
    monkeypatch.setenv("GEOSENTINEL_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("GEOSENTINEL_BATCH_SIZE", "50")
    monkeypatch.setenv("GEOSENTINEL_SAMPLE_INTERVAL", "2.5")
    monkeypatch.setenv("GEOSENTINEL_STALE_FALLBACK", "off")

    config = SentinelConfig.from_env()
    assert config.base_url == "http://127.0.0.1:9000"
    assert config.data_dir == tmp_path
    assert config.batch_size == 50
    assert config.sample_interval == 2.5
    assert config.stale_fallback is False
    assert config.immediate_upload is True


def test_from_env_overrides_win(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("GEOSENTINEL_BATCH_SIZE", "50")
    config = SentinelConfig.from_env(batch_size=5, data_dir=tmp_path)
    assert config.batch_size == 5


def test_from_env_rejects_bad_numbers(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GEOSENTINEL_MAX_DELAY_MS", "soon")
    with pytest.raises(SentinelConfigError):
        SentinelConfig.from_env()


def test_default_data_dir_prefers_appdata(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("APPDATA", str(tmp_path))
    assert default_data_dir() == tmp_path / "GeoSentinelService"

    monkeypatch.delenv("APPDATA")
    assert default_data_dir() == Path.home() / ".geosentinel"


def test_station_file_round_trip(tmp_path: Path) -> None:
    station = StationFile(tmp_path / "nested" / "config.json")
    assert station.read() is None

    station.write("  station-7 ")
    assert station.read() == "station-7"
    assert station.path.read_text(encoding="utf-8").count("stationId") == 1


@pytest.mark.parametrize("content", ["{not json", '["station-7"]', '{"stationId": ""}', '{"stationId": 7}'])
def test_station_file_unusable_content_reads_as_missing(tmp_path: Path, content: str) -> None:
    path = tmp_path / "config.json"
    path.write_text(content, encoding="utf-8")
    assert StationFile(path).read() is None


def test_station_file_rejects_empty_identifier(tmp_path: Path) -> None:
    with pytest.raises(SentinelConfigError):
        StationFile(tmp_path / "config.json").write("   ")
