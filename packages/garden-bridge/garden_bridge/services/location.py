"""Service layer — location providers.

Providers report through callbacks (``on_fix`` / ``on_error``) the way
platform location managers do; the ``location`` handler bridges them into a
single await with :class:`~garden_bridge.services.pending.PendingResult`.
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any

import httpx

from garden_bridge.logging import get_logger
from garden_bridge.services.base import ServiceError, ServiceUnavailableError

log = get_logger(__name__)


@dataclass
class LocationFix:
    latitude: float
    longitude: float
    accuracy: float  # metres
    source: str
    altitude: float | None = None
    timestamp: float = 0.0
    city: str | None = None
    country: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "accuracy": self.accuracy,
            "altitude": self.altitude,
            "timestamp": self.timestamp or time.time(),
            "source": self.source,
            "city": self.city,
            "country": self.country,
        }


FixCallback = Callable[[LocationFix], None]
ErrorCallback = Callable[[BaseException], None]


class LocationProvider(ABC):
    @abstractmethod
    def start(self, accuracy: str, on_fix: FixCallback, on_error: ErrorCallback) -> None:
        """Begin a fix request.  Must return promptly; results arrive via callbacks."""

    @abstractmethod
    def stop(self) -> None:
        """Abort any in-flight request.  Safe to call when idle."""


class StaticLocationProvider(LocationProvider):
    """Reports a configured coordinate (desktops with a known position)."""

    def __init__(self, latitude: float, longitude: float, accuracy: float = 100.0) -> None:
        self._fix = LocationFix(latitude, longitude, accuracy, source="static")

    def start(self, accuracy: str, on_fix: FixCallback, on_error: ErrorCallback) -> None:
        on_fix(replace(self._fix, timestamp=time.time()))

    def stop(self) -> None:
        pass


class UnavailableLocationProvider(LocationProvider):
    def start(self, accuracy: str, on_fix: FixCallback, on_error: ErrorCallback) -> None:
        on_error(ServiceUnavailableError("No location provider configured"))

    def stop(self) -> None:
        pass


class IPLocationProvider(LocationProvider):
    """Coarse city-level position from an IP geolocation endpoint.

    Expects an ipinfo-style body (``{"loc": "lat,lon", "city": ...}``) or an
    ip-api-style body (``{"lat": .., "lon": ..}``).
    """

    def __init__(self, url: str, http_timeout: float = 10.0) -> None:
        self._url = url
        self._http_timeout = http_timeout
        self._task: asyncio.Task[None] | None = None

    def start(self, accuracy: str, on_fix: FixCallback, on_error: ErrorCallback) -> None:
        self.stop()
        self._task = asyncio.get_running_loop().create_task(self._lookup(on_fix, on_error))

    def stop(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _lookup(self, on_fix: FixCallback, on_error: ErrorCallback) -> None:
        try:
            async with httpx.AsyncClient(timeout=self._http_timeout) as client:
                resp = await client.get(self._url)
                resp.raise_for_status()
                on_fix(self.parse(resp.json()))
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            # Every failure reaches on_error.
            log.warning("ip_location_failed", url=self._url, error=str(exc))
            on_error(exc)

    @staticmethod
    def parse(body: Any) -> LocationFix:
        if not isinstance(body, dict):
            raise ServiceError("Geolocation response is not an object")
        try:
            lat, lon = IPLocationProvider._coordinates(body)
        except (TypeError, ValueError) as exc:
            raise ServiceError(f"Geolocation response has invalid coordinates: {exc}") from exc
        return LocationFix(
            latitude=lat,
            longitude=lon,
            accuracy=5000.0,
            source="ip",
            timestamp=time.time(),
            city=body.get("city"),
            country=body.get("country") or body.get("countryCode"),
        )

    @staticmethod
    def _coordinates(body: dict[str, Any]) -> tuple[float, float]:
        if isinstance(body.get("loc"), str) and "," in body["loc"]:
            lat_s, lon_s = body["loc"].split(",", 1)
            lat, lon = float(lat_s), float(lon_s)
        elif "lat" in body and "lon" in body:
            lat, lon = float(body["lat"]), float(body["lon"])
        elif "latitude" in body and "longitude" in body:
            lat, lon = float(body["latitude"]), float(body["longitude"])
        else:
            raise ServiceError("Geolocation response has no coordinates")
        return lat, lon
