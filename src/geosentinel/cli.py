"""Command-line entry point: ``geosentinel --station=<id>``."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from collections.abc import Sequence
from pathlib import Path

from geosentinel.agent import SentinelAgent
from geosentinel.config import SentinelConfig, StationFile
from geosentinel.exceptions import SentinelConfigError, SentinelStorageError
from geosentinel.ingestion.sampler import LocationSampler, StaticSampler, UnavailableSampler

_logger = logging.getLogger(__name__)


def _parse_position(value: str) -> tuple[float, float]:
    try:
        lat_text, lng_text = value.split(",", 1)
        return float(lat_text), float(lng_text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected LAT,LNG, got {value!r}") from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="geosentinel",
        description="Buffer device locations locally and sync them to the collection service.",
    )
    parser.add_argument("--station", help="Station identifier; persisted for later runs")
    parser.add_argument("--data-dir", type=Path, help="Directory for local.db and config.json")
    parser.add_argument("--base-url", help="Collection service base URL")
    parser.add_argument(
        "--position",
        type=_parse_position,
        metavar="LAT,LNG",
        help="Report a fixed position (stationary stations)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    return parser


async def run(config: SentinelConfig, sampler: LocationSampler) -> None:
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows event loops lack add_signal_handler; Ctrl+C still raises KeyboardInterrupt.
            pass

    async with SentinelAgent(config, sampler) as agent:
        await agent.start()
        await stop_event.wait()


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    overrides: dict[str, object] = {}
    if args.data_dir is not None:
        overrides["data_dir"] = args.data_dir
    if args.base_url is not None:
        overrides["base_url"] = args.base_url

    try:
        config = SentinelConfig.from_env(**overrides)
        if args.station:
            StationFile(config.station_file).write(args.station)
    except SentinelConfigError as exc:
        _logger.error("Invalid configuration: %s", exc)
        return 2

    sampler: LocationSampler
    if args.position is not None:
        sampler = StaticSampler(*args.position)
    else:
        sampler = UnavailableSampler()

    try:
        asyncio.run(run(config, sampler))
    except SentinelStorageError as exc:
        _logger.critical("Cannot open local storage: %s", exc)
        return 1
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
