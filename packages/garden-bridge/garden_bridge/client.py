"""GardenBridge HTTP client.

Provides both synchronous (``BridgeClient``) and asynchronous
(``AsyncBridgeClient``) wrappers around the loopback ``/invoke`` API, for
adapters that translate an external tool-calling protocol into bridge
commands.
"""

from __future__ import annotations

from typing import Any

import httpx

from garden_bridge.protocol.constants import DEFAULT_HTTP_PORT, HEADER_API_TOKEN

DEFAULT_BASE_URL = f"http://localhost:{DEFAULT_HTTP_PORT}"


def _envelope(resp: httpx.Response) -> dict[str, Any]:
    """Decode an /invoke answer; non-envelope HTTP failures become HTTP_ERROR."""
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("ok"), bool):
        return body
    if resp.is_success:
        return {"ok": False, "error": {"code": "INVALID_RESPONSE", "message": "Response is not an envelope"}}
    return {
        "ok": False,
        "error": {"code": "HTTP_ERROR", "message": f"HTTP {resp.status_code}: {resp.reason_phrase}"},
    }


def _headers(api_token: str | None) -> dict[str, str]:
    return {HEADER_API_TOKEN: api_token} if api_token else {}


class BridgeClient:
    """Synchronous HTTP client for the GardenBridge daemon.

    Usage::

        with BridgeClient() as client:
            if client.check_connection():
                result = client.invoke("screen.capture", {"format": "png"})
                png = client.fetch_resource(result["payload"]["resourceId"])
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        api_token: str | None = None,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = base_url
        self._http = httpx.Client(
            base_url=base_url,
            headers=_headers(api_token),
            timeout=timeout,
            transport=transport,
        )

    def invoke(
        self,
        command: str,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"command": command}
        if params is not None:
            body["params"] = params
        kwargs: dict[str, Any] = {"json": body}
        if timeout is not None:
            kwargs["timeout"] = timeout
        return _envelope(self._http.post("/invoke", **kwargs))

    def fetch_resource(self, resource_id: str) -> bytes:
        resp = self._http.get(f"/resources/{resource_id}")
        resp.raise_for_status()
        return resp.content

    def health(self) -> dict[str, Any]:
        resp = self._http.get("/health")
        resp.raise_for_status()
        return resp.json()  # type: ignore[no-any-return]

    def list_commands(self) -> dict[str, Any]:
        resp = self._http.get("/commands")
        resp.raise_for_status()
        return resp.json()  # type: ignore[no-any-return]

    def check_connection(self) -> bool:
        """True when the daemon answers a harmless ``file.exists`` call."""
        try:
            return bool(self.invoke("file.exists", {"path": "/"}).get("ok"))
        except httpx.HTTPError:
            return False

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "BridgeClient":
        return self

    def __exit__(self, *_: Any) -> None:
        self.close()


class AsyncBridgeClient:
    """Asynchronous HTTP client for the GardenBridge daemon.

    Usage::

        async with AsyncBridgeClient() as client:
            result = await client.invoke("calendar.list", {"days": 3})
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        api_token: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url
        self._http = httpx.AsyncClient(
            base_url=base_url,
            headers=_headers(api_token),
            timeout=timeout,
            transport=transport,
        )

    async def invoke(
        self,
        command: str,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"command": command}
        if params is not None:
            body["params"] = params
        kwargs: dict[str, Any] = {"json": body}
        if timeout is not None:
            kwargs["timeout"] = timeout
        return _envelope(await self._http.post("/invoke", **kwargs))

    async def fetch_resource(self, resource_id: str) -> bytes:
        resp = await self._http.get(f"/resources/{resource_id}")
        resp.raise_for_status()
        return resp.content

    async def health(self) -> dict[str, Any]:
        resp = await self._http.get("/health")
        resp.raise_for_status()
        return resp.json()  # type: ignore[no-any-return]

    async def list_commands(self) -> dict[str, Any]:
        resp = await self._http.get("/commands")
        resp.raise_for_status()
        return resp.json()  # type: ignore[no-any-return]

    async def check_connection(self) -> bool:
        try:
            result = await self.invoke("file.exists", {"path": "/"})
        except httpx.HTTPError:
            return False
        return bool(result.get("ok"))

    async def close(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "AsyncBridgeClient":
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()
