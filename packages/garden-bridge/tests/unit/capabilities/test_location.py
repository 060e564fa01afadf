"""Unit tests — LocationHandler and the location providers."""

from __future__ import annotations

import asyncio
import threading

import httpx
import pytest

from garden_bridge.capabilities.location import LocationHandler
from garden_bridge.exceptions import CommandError
from garden_bridge.services.base import ServiceError
from garden_bridge.services.location import (
    ErrorCallback,
    FixCallback,
    IPLocationProvider,
    LocationFix,
    LocationProvider,
    StaticLocationProvider,
)
from garden_bridge.services.pending import PendingResult


class SilentProvider(LocationProvider):
    """Never answers."""

    def __init__(self) -> None:
        self.stopped = 0

    def start(self, accuracy: str, on_fix: FixCallback, on_error: ErrorCallback) -> None:
        pass

    def stop(self) -> None:
        self.stopped += 1


class ChattyProvider(LocationProvider):
    """Answers twice from a worker thread, then errors."""

    def start(self, accuracy: str, on_fix: FixCallback, on_error: ErrorCallback) -> None:
        def _run() -> None:
            on_fix(LocationFix(1.0, 2.0, 10.0, source="gps"))
            on_fix(LocationFix(9.0, 9.0, 10.0, source="gps"))
            on_error(RuntimeError("late"))

        threading.Thread(target=_run).start()

    def stop(self) -> None:
        pass


class FailingProvider(LocationProvider):
    def start(self, accuracy: str, on_fix: FixCallback, on_error: ErrorCallback) -> None:
        on_error(RuntimeError("denied by user"))

    def stop(self) -> None:
        pass


@pytest.mark.unit
class TestLocationHandler:
    async def test_static_fix(self) -> None:
        handler = LocationHandler(StaticLocationProvider(48.85, 2.35))
        fix = await handler.execute("location.get", {})
        assert (fix["latitude"], fix["longitude"]) == (48.85, 2.35)
        assert fix["source"] == "static"
        assert fix["timestamp"] > 0

    async def test_first_callback_wins(self) -> None:
        handler = LocationHandler(ChattyProvider())
        fix = await handler.execute("location.get", {"timeout": 2})
        assert (fix["latitude"], fix["longitude"]) == (1.0, 2.0)

    async def test_timeout_stops_provider(self) -> None:
        provider = SilentProvider()
        handler = LocationHandler(provider)
        with pytest.raises(CommandError) as exc_info:
            await handler.execute("location.get", {"timeout": 0.05})
        assert exc_info.value.code == "TIMEOUT"
        assert provider.stopped == 1

    async def test_provider_error(self) -> None:
        handler = LocationHandler(FailingProvider())
        with pytest.raises(CommandError) as exc_info:
            await handler.execute("location.get", {})
        assert exc_info.value.code == "LOCATION_ERROR"
        assert "denied by user" in exc_info.value.message

    async def test_bad_accuracy(self) -> None:
        handler = LocationHandler(StaticLocationProvider(0, 0))
        with pytest.raises(CommandError) as exc_info:
            await handler.execute("location.get", {"accuracy": "precise"})
        assert exc_info.value.code == "INVALID_PARAMS"


@pytest.mark.unit
class TestPendingResult:
    async def test_resolve_once(self) -> None:
        pending: PendingResult[int] = PendingResult()
        assert pending.resolve(1) is True
        assert pending.resolve(2) is False
        assert pending.reject(RuntimeError()) is False
        assert await pending.wait(1) == 1

    async def test_late_resolve_after_timeout_is_ignored(self) -> None:
        pending: PendingResult[int] = PendingResult()
        with pytest.raises(asyncio.TimeoutError):
            await pending.wait(0.01)
        assert pending.resolve(5) is False
        assert pending.done


@pytest.mark.unit
class TestIPLocationParse:
    def test_ipinfo_body(self) -> None:
        fix = IPLocationProvider.parse({"loc": "52.52,13.40", "city": "Berlin", "country": "DE"})
        assert (fix.latitude, fix.longitude, fix.city, fix.country) == (52.52, 13.40, "Berlin", "DE")
        assert fix.source == "ip"

    def test_ip_api_body(self) -> None:
        fix = IPLocationProvider.parse({"lat": 35.0, "lon": 139.0, "countryCode": "JP"})
        assert fix.country == "JP"

    def test_no_coordinates(self) -> None:
        with pytest.raises(ServiceError):
            IPLocationProvider.parse({"city": "Nowhere"})

    @pytest.mark.parametrize(
        "body",
        [["52.5", "13.4"], {"lat": None, "lon": 13.4}, {"loc": "north,east"}, "52.5,13.4"],
    )
    def test_malformed_body_is_service_error(self, body: object) -> None:
        with pytest.raises(ServiceError):
            IPLocationProvider.parse(body)

    async def test_lookup_reports_malformed_body(self, monkeypatch: pytest.MonkeyPatch) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=[1, 2]))
        real_client = httpx.AsyncClient

        def client_factory(**kwargs: object) -> httpx.AsyncClient:
            return real_client(transport=transport, **kwargs)  # type: ignore[arg-type]

        monkeypatch.setattr(httpx, "AsyncClient", client_factory)
        handler = LocationHandler(IPLocationProvider("https://geo.test/json"))
        with pytest.raises(CommandError) as exc_info:
            await handler.execute("location.get", {"timeout": 5})
        assert exc_info.value.code == "LOCATION_ERROR"
        assert "not an object" in exc_info.value.message

    async def test_lookup_reports_http_failure(self, monkeypatch: pytest.MonkeyPatch) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(503))
        real_client = httpx.AsyncClient

        def client_factory(**kwargs: object) -> httpx.AsyncClient:
            return real_client(transport=transport, **kwargs)  # type: ignore[arg-type]

        monkeypatch.setattr(httpx, "AsyncClient", client_factory)
        handler = LocationHandler(IPLocationProvider("https://geo.test/json"))
        with pytest.raises(CommandError) as exc_info:
            await handler.execute("location.get", {"timeout": 2})
        assert exc_info.value.code == "LOCATION_ERROR"
