"""Gateway layer — Persistent WebSocket client.

The bridge dials out to the controller gateway and registers as a node::

    socket open ──(connect_delay)──> req connect ──> res hello-ok ──> paired
          ^                                                  │
          └────── event connect.challenge (nonce, ts)        └─> ping every heartbeat_interval

Inbound frames are processed strictly in receipt order by one receive
loop.  ``invoke`` frames are the exception: each is routed as its own task
so a slow command never blocks the handshake or other invocations; each
one answers with exactly one ``invoke-res``.

Tear-down cancels the hello sender, the heartbeat and every in-flight
invocation together before closing the socket.
"""

from __future__ import annotations

import asyncio
import platform
import uuid
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from garden_bridge import __version__
from garden_bridge.capabilities.base import current_platform
from garden_bridge.capabilities.router import CommandRouter
from garden_bridge.config import GatewayConfig
from garden_bridge.exceptions import HandshakeError
from garden_bridge.gateway.identity import DeviceIdentity, TokenStore
from garden_bridge.gateway.session import PairingSession, SessionState, StateListener
from garden_bridge.logging import bind_invocation_context, get_logger
from garden_bridge.permissions import PermissionGate
from garden_bridge.protocol.constants import (
    CHALLENGE_EVENT,
    CLIENT_ID,
    CLIENT_MODE,
    CLIENT_ROLE,
    CONNECT_METHOD,
    GATEWAY_PROTOCOL_VERSION,
    HELLO_OK,
    FrameType,
)
from garden_bridge.protocol.frames import (
    FrameDecodeError,
    decode_frame,
    encode_frame,
    invoke_result_frame,
    ping_frame,
    pong_frame,
    request_frame,
)
from garden_bridge.protocol.values import as_dict, as_int, as_str, dig

log = get_logger(__name__)


class GatewaySocket(Protocol):
    """The subset of a websockets connection the client relies on."""

    async def send(self, message: str) -> None: ...

    async def close(self) -> None: ...

    def __aiter__(self) -> Any: ...


Connector = Callable[[str], Awaitable[GatewaySocket]]


async def _websockets_connector(url: str) -> GatewaySocket:
    # Liveness is handled by the protocol-level ping frames.
    return await websockets.connect(url, ping_interval=None, open_timeout=10)


class GatewayClient:
    """Node-side connection to the controller gateway.

    Usage::

        client = GatewayClient(settings.gateway, router, identity, permissions, token_store)
        task = asyncio.create_task(client.run_forever())
        ...
        await client.stop()
    """

    def __init__(
        self,
        settings: GatewayConfig,
        router: CommandRouter,
        identity: DeviceIdentity | None,
        permissions: PermissionGate,
        token_store: TokenStore | None = None,
        connector: Connector | None = None,
    ) -> None:
        self._config = settings
        self._router = router
        self._identity = identity
        self._permissions = permissions
        self._token_store = token_store
        self._connector = connector or _websockets_connector

        self._session = PairingSession()
        self._listeners: list[StateListener] = []
        self._ws: GatewaySocket | None = None
        self._connection_id: str | None = None
        self._connect_request_id: str | None = None
        self._hello_sent = asyncio.Event()

        self._receive_task: asyncio.Task[None] | None = None
        self._hello_task: asyncio.Task[None] | None = None
        self._heartbeat_task: asyncio.Task[None] | None = None
        self._invoke_tasks: set[asyncio.Task[None]] = set()
        self._send_lock = asyncio.Lock()
        self._stopped = False

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._session.state

    @property
    def reason(self) -> str | None:
        return self._session.reason

    @property
    def session(self) -> PairingSession:
        return self._session

    @property
    def url(self) -> str:
        return self._config.url()

    def add_listener(self, callback: StateListener) -> None:
        self._listeners.append(callback)

    def remove_listener(self, callback: StateListener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self, state: SessionState, reason: str | None) -> None:
        for callback in list(self._listeners):
            try:
                callback(state, reason)
            except Exception:
                log.exception("gateway_listener_failed", state=state.value)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the socket and start the handshake.

        Returns once the socket is open (or the attempt failed); pairing
        completes in the background.  A previous session is torn down and
        replaced, so no pending challenge ever crosses attempts.
        """
        if self._session.is_active:
            await self.disconnect()

        self._session = PairingSession(on_change=self._notify)
        self._hello_sent = asyncio.Event()
        self._connect_request_id = None
        self._connection_id = uuid.uuid4().hex[:12]
        self._receive_task = None
        self._session.begin_connect()

        url = self.url
        log.info("gateway_connecting", url=url, connection_id=self._connection_id)
        try:
            self._ws = await self._connector(url)
        except (OSError, WebSocketException, asyncio.TimeoutError) as exc:
            self._session.fail(f"Connection failed: {exc}")
            return

        self._receive_task = asyncio.create_task(self._receive_loop(self._session))
        self._hello_task = asyncio.create_task(self._send_hello(self._session))

    async def disconnect(self) -> None:
        await self._teardown()
        self._session.close()

    async def stop(self) -> None:
        """Disconnect and stop ``run_forever`` from reconnecting."""
        self._stopped = True
        await self.disconnect()

    async def wait_closed(self) -> None:
        """Block until the receive loop of the current connection has ended."""
        task = self._receive_task
        if task is not None:
            await asyncio.wait({task})

    async def wait_paired(self, timeout: float) -> None:
        """Block until the current session is paired.

        Raises:
            HandshakeError: The session failed or closed first, or *timeout*
                elapsed.
        """
        session = self._session
        if session.state is SessionState.PAIRED:
            return
        if session.state is SessionState.ERROR:
            raise HandshakeError(f"Pairing failed: {session.reason}")

        outcome: asyncio.Future[str | None] = asyncio.get_running_loop().create_future()

        def on_change(state: SessionState, reason: str | None) -> None:
            if outcome.done():
                return
            if state is SessionState.PAIRED:
                outcome.set_result(None)
            elif state in (SessionState.ERROR, SessionState.DISCONNECTED):
                outcome.set_result(reason or state.value)

        self.add_listener(on_change)
        try:
            failure = await asyncio.wait_for(outcome, timeout)
        except asyncio.TimeoutError as exc:
            raise HandshakeError(f"Not paired after {timeout}s") from exc
        finally:
            self.remove_listener(on_change)
        if failure is not None:
            raise HandshakeError(f"Pairing failed: {failure}")

    async def run_forever(self) -> None:
        """Connect, and reconnect with exponential backoff while enabled."""
        self._stopped = False
        delay = self._config.reconnect_initial_delay
        while not self._stopped:
            await self.connect()
            await self.wait_closed()
            was_paired = self._session.has_paired
            await self._teardown()
            if self._stopped or not self._config.auto_reconnect:
                return
            if was_paired:
                delay = self._config.reconnect_initial_delay
            log.info("gateway_reconnect_scheduled", delay=delay, reason=self.reason)
            await asyncio.sleep(delay)
            delay = min(delay * 2, self._config.reconnect_max_delay)

    async def _teardown(self) -> None:
        current = asyncio.current_task()
        tasks = [
            t
            for t in (self._hello_task, self._heartbeat_task, self._receive_task, *self._invoke_tasks)
            if t is not None and t is not current and not t.done()
        ]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._hello_task = None
        self._heartbeat_task = None
        self._invoke_tasks.clear()

        ws, self._ws = self._ws, None
        if ws is not None:
            try:
                await ws.close()
            except (OSError, WebSocketException) as exc:
                log.debug("gateway_close_failed", error=str(exc))

    async def _fail(self, session: PairingSession, reason: str) -> None:
        if session is not self._session:
            return
        session.fail(reason)
        await self._teardown()

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    async def _send(self, frame: dict[str, Any]) -> None:
        ws = self._ws
        if ws is None:
            raise ConnectionError("Gateway socket is not open")
        async with self._send_lock:
            await ws.send(encode_frame(frame))

    def build_connect_params(self, session: PairingSession) -> dict[str, Any]:
        """Build the ``connect`` request params, consuming any pending challenge."""
        plat = current_platform()
        platform_name = plat.value if plat else platform.system().lower()
        challenge = session.take_challenge()

        device: dict[str, Any] = {
            "id": None,
            "publicKey": None,
            "signature": None,
            "signedAt": None,
            "nonce": None,
        }
        if self._identity is not None and self._identity.has_key:
            device["id"] = self._identity.device_id
            device["publicKey"] = self._identity.public_key
            if challenge is not None:
                signature = self._identity.sign(challenge.nonce, challenge.timestamp)
                if signature is not None:
                    device["signature"] = signature.signature
                    device["signedAt"] = signature.signed_at
                    device["nonce"] = challenge.nonce

        device_token = self._token_store.load() if self._token_store else None
        return {
            "minProtocol": GATEWAY_PROTOCOL_VERSION,
            "maxProtocol": GATEWAY_PROTOCOL_VERSION,
            "client": {
                "id": CLIENT_ID,
                "version": __version__,
                "platform": platform_name,
                "mode": CLIENT_MODE,
            },
            "role": CLIENT_ROLE,
            "scopes": [],
            "caps": self._router.capabilities(),
            "commands": self._router.commands(),
            "permissions": self._permissions.snapshot(),
            "auth": {"token": self._config.token, "deviceToken": device_token},
            "locale": self._config.locale,
            "userAgent": f"GardenBridge/{__version__} {platform_name}",
            "device": device,
        }

    async def _send_hello(self, session: PairingSession) -> None:
        bind_invocation_context(connection_id=self._connection_id)
        await asyncio.sleep(self._config.connect_delay)

        if self._config.unsigned_hello == "wait" and session.pending_challenge is None:
            arrived = await session.wait_for_challenge(self._config.challenge_timeout)
            if not arrived:
                if self._config.require_signature:
                    await self._fail(session, "challenge timeout")
                    return
                log.warning("challenge_timeout_sending_unsigned", timeout=self._config.challenge_timeout)

        params = self.build_connect_params(session)
        frame = request_frame(CONNECT_METHOD, params)
        self._connect_request_id = frame["id"]
        try:
            await self._send(frame)
        except (ConnectionClosed, OSError) as exc:
            await self._fail(session, f"Failed to send connect: {exc}")
            return

        session.mark_connected()
        self._hello_sent.set()
        log.info("gateway_hello_sent", signed=params["device"]["signature"] is not None)

    async def _heartbeat(self, session: PairingSession) -> None:
        bind_invocation_context(connection_id=self._connection_id)
        while True:
            await asyncio.sleep(self._config.heartbeat_interval)
            try:
                await self._send(ping_frame())
            except (ConnectionClosed, OSError) as exc:
                await self._fail(session, f"Heartbeat failed: {exc}")
                return

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    async def _receive_loop(self, session: PairingSession) -> None:
        bind_invocation_context(connection_id=self._connection_id)
        ws = self._ws
        if ws is None:
            return
        try:
            async for raw in ws:
                try:
                    frame = decode_frame(raw)
                except FrameDecodeError as exc:
                    await self._fail(session, f"Invalid frame: {exc}")
                    return
                await self._dispatch(session, frame)
        except (ConnectionClosed, OSError) as exc:
            await self._fail(session, f"Connection lost: {exc}")
            return
        if session.is_active:
            await self._fail(session, "Connection closed by gateway")

    async def _dispatch(self, session: PairingSession, frame: dict[str, Any]) -> None:
        kind = frame["type"]
        if kind == FrameType.EVENT.value:
            self._on_event(session, frame)
        elif kind == FrameType.RESPONSE.value:
            await self._on_response(session, frame)
        elif kind == FrameType.INVOKE.value:
            task = asyncio.create_task(self._on_invoke(frame))
            self._invoke_tasks.add(task)
            task.add_done_callback(self._invoke_tasks.discard)
        elif kind == FrameType.PING.value:
            try:
                await self._send(pong_frame())
            except (ConnectionClosed, OSError) as exc:
                await self._fail(session, f"Failed to send pong: {exc}")
        elif kind == FrameType.PONG.value:
            pass
        else:
            log.debug("gateway_frame_unhandled", type=kind)

    def _on_event(self, session: PairingSession, frame: dict[str, Any]) -> None:
        event = as_str(frame.get("event"))
        if event != CHALLENGE_EVENT:
            log.debug("gateway_event", gateway_event=event)
            return
        nonce = as_str(dig(frame, "payload", "nonce"))
        ts = as_int(dig(frame, "payload", "ts"))
        if ts is None:
            ts = as_int(dig(frame, "payload", "timestamp"))
        if not nonce or ts is None:
            log.warning("challenge_malformed")
            return
        if session.record_challenge(nonce, ts):
            log.info("challenge_received", late=self._hello_sent.is_set())

    async def _on_response(self, session: PairingSession, frame: dict[str, Any]) -> None:
        payload = as_dict(frame.get("payload")) or {}
        is_connect = frame.get("id") is not None and frame.get("id") == self._connect_request_id

        if frame.get("ok") is True and payload.get("type") == HELLO_OK:
            # The ack can race the tail of our own send; pairing follows connected.
            await self._hello_sent.wait()
            self._on_hello_ok(session, payload)
            return

        if is_connect and frame.get("ok") is False:
            code = as_str(dig(frame, "error", "code")) or "UNKNOWN"
            message = as_str(dig(frame, "error", "message")) or ""
            await self._fail(session, f"Handshake rejected: {code}: {message}".rstrip(": "))
            return

        log.debug("gateway_response", id=frame.get("id"), ok=frame.get("ok"))

    def _on_hello_ok(self, session: PairingSession, payload: dict[str, Any]) -> None:
        if session.state is not SessionState.CONNECTED:
            log.warning("hello_ok_unexpected", state=session.state.value)
            return
        token = as_str(dig(payload, "auth", "deviceToken"))
        if token and self._token_store is not None:
            try:
                self._token_store.save(token)
            except OSError as exc:
                log.warning("device_token_persist_failed", error=str(exc))
        session.mark_paired(token)
        log.info("gateway_paired", protocol=payload.get("protocol"), has_token=bool(token))
        self._heartbeat_task = asyncio.create_task(self._heartbeat(session))

    async def _on_invoke(self, frame: dict[str, Any]) -> None:
        invoke_id = as_str(frame.get("id"))
        if not invoke_id:
            log.warning("invoke_without_id")
            return
        command = as_str(frame.get("command")) or ""
        bind_invocation_context(request_id=invoke_id, connection_id=self._connection_id)

        result = await self._router.route(command, frame.get("params"))

        try:
            await self._send(invoke_result_frame(invoke_id, result))
        except (ConnectionClosed, OSError) as exc:
            # The receive loop reports the broken socket.
            log.warning("invoke_result_send_failed", id=invoke_id, error=str(exc))
