"""Location sampler adapters.

The geolocation source itself is external. The agent only needs something
that, when asked, produces :class:`Coordinates` or raises
:class:`SentinelSamplerError`.
"""

from __future__ import annotations

import asyncio
import dataclasses
from collections.abc import Callable, Mapping
from typing import Any, Protocol

from pydantic import ValidationError

from geosentinel.exceptions import SentinelSamplerError
from geosentinel.models.location import Coordinates


@dataclasses.dataclass(frozen=True)
class SamplerOptions:
    """Request parameters handed to the sampler on every tick.

    Parameters
    ----------
    high_accuracy : bool
        Prefer a precise fix over a fast one.
    timeout : float
        Seconds to wait for a fix.
    maximum_age : float
        Accept a cached fix up to this many seconds old.
    """

    high_accuracy: bool = False
    timeout: float = 15.0
    maximum_age: float = 60.0


class LocationSampler(Protocol):
    async def get_position(self, options: SamplerOptions) -> Coordinates:
        ...


class StaticSampler:
    """Always reports the same position (fixed stations, tests)."""

    def __init__(self, latitude: float, longitude: float) -> None:
        self._coords = Coordinates(latitude=latitude, longitude=longitude)

    async def get_position(self, options: SamplerOptions) -> Coordinates:
        return self._coords


OnSample = Callable[[Coordinates | Mapping[str, Any]], None]
OnError = Callable[[str], None]


class CallbackSampler:
    """Adapt a callback-style geolocation API to :class:`LocationSampler`.

    *request* is invoked as ``request(on_sample, on_error, options)`` and
    must eventually call one of the two callbacks, from any thread. Only
    the first callback counts; no callback within ``options.timeout``
    reads as a sampler failure.
    """

    def __init__(self, request: Callable[[OnSample, OnError, SamplerOptions], None]) -> None:
        self._request = request

    async def get_position(self, options: SamplerOptions) -> Coordinates:
        loop = asyncio.get_running_loop()
        future: asyncio.Future[Coordinates] = loop.create_future()

        def _resolve(value: Coordinates | Mapping[str, Any]) -> None:
            if future.done():
                return
            try:
                coords = value if isinstance(value, Coordinates) else Coordinates.model_validate(value)
            except ValidationError as exc:
                future.set_exception(SentinelSamplerError(f"Invalid position from sampler: {exc}"))
                return
            future.set_result(coords)

        def _reject(reason: str) -> None:
            if not future.done():
                future.set_exception(SentinelSamplerError(reason))

        def on_sample(value: Coordinates | Mapping[str, Any]) -> None:
            loop.call_soon_threadsafe(_resolve, value)

        def on_error(reason: str) -> None:
            loop.call_soon_threadsafe(_reject, reason)

        try:
            self._request(on_sample, on_error, options)
        except Exception as exc:
            raise SentinelSamplerError(f"Sampler request failed: {exc}") from exc

        try:
            return await asyncio.wait_for(future, options.timeout)
        except TimeoutError as exc:
            raise SentinelSamplerError(f"No position within {options.timeout}s") from exc


class UnavailableSampler:
    """Stands in when no geolocation source is wired up; every request fails."""

    async def get_position(self, options: SamplerOptions) -> Coordinates:
        raise SentinelSamplerError("No geolocation source configured")
