"""Unit tests — BridgeClient / AsyncBridgeClient over httpx.MockTransport."""

from __future__ import annotations

import json

import httpx
import pytest

from garden_bridge.client import AsyncBridgeClient, BridgeClient


def bridge_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/invoke" and request.method == "POST":
        body = json.loads(request.content)
        if body["command"] == "file.exists":
            return httpx.Response(200, json={"ok": True, "payload": {"exists": True, "path": body["params"]["path"]}})
        if body["command"] == "auth.check":
            if request.headers.get("X-Garden-Token") != "s3cret":
                return httpx.Response(401, json={"ok": False, "error": {"code": "UNAUTHORIZED", "message": "no"}})
            return httpx.Response(200, json={"ok": True})
        if body["command"] == "proxy.broken":
            return httpx.Response(502, text="Bad Gateway")
        return httpx.Response(
            200,
            json={"ok": False, "error": {"code": "UNKNOWN_COMMAND", "message": f"Unknown command: {body['command']}"}},
        )
    if request.url.path == "/resources/r1":
        return httpx.Response(200, content=b"\x89PNGdata", headers={"Content-Type": "image/png"})
    if request.url.path == "/health":
        return httpx.Response(200, json={"status": "ok"})
    return httpx.Response(404, json={"ok": False, "error": {"code": "NOT_FOUND", "message": "Use POST /invoke"}})


@pytest.fixture
def client() -> BridgeClient:
    return BridgeClient(transport=httpx.MockTransport(bridge_handler))


@pytest.mark.unit
class TestBridgeClient:
    def test_invoke_success(self, client: BridgeClient) -> None:
        result = client.invoke("file.exists", {"path": "/tmp"})
        assert result == {"ok": True, "payload": {"exists": True, "path": "/tmp"}}

    def test_failure_envelope_passed_through(self, client: BridgeClient) -> None:
        result = client.invoke("bogus.op")
        assert result["error"]["code"] == "UNKNOWN_COMMAND"

    def test_non_envelope_http_error(self, client: BridgeClient) -> None:
        result = client.invoke("proxy.broken")
        assert result == {"ok": False, "error": {"code": "HTTP_ERROR", "message": "HTTP 502: Bad Gateway"}}

    def test_error_envelope_with_status_kept(self) -> None:
        with BridgeClient(transport=httpx.MockTransport(bridge_handler)) as anon:
            assert anon.invoke("auth.check")["error"]["code"] == "UNAUTHORIZED"
        with BridgeClient(api_token="s3cret", transport=httpx.MockTransport(bridge_handler)) as authed:
            assert authed.invoke("auth.check") == {"ok": True}

    def test_fetch_resource(self, client: BridgeClient) -> None:
        assert client.fetch_resource("r1") == b"\x89PNGdata"

    def test_fetch_missing_resource_raises(self, client: BridgeClient) -> None:
        with pytest.raises(httpx.HTTPStatusError):
            client.fetch_resource("gone")

    def test_check_connection(self, client: BridgeClient) -> None:
        assert client.check_connection() is True

    def test_check_connection_unreachable(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with BridgeClient(transport=httpx.MockTransport(refuse)) as down:
            assert down.check_connection() is False


@pytest.mark.unit
class TestAsyncBridgeClient:
    async def test_invoke_and_health(self) -> None:
        async with AsyncBridgeClient(transport=httpx.MockTransport(bridge_handler)) as client:
            result = await client.invoke("file.exists", {"path": "/"})
            assert result["payload"]["exists"] is True
            assert await client.health() == {"status": "ok"}
            assert await client.check_connection() is True
            assert await client.fetch_resource("r1") == b"\x89PNGdata"
