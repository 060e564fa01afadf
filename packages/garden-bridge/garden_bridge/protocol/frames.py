"""Protocol layer — Gateway socket frames.

Every frame is a JSON object with a ``type`` discriminator (see
:class:`~garden_bridge.protocol.constants.FrameType`)::

    {"type": "req", "id": "...", "method": "connect", "params": {...}}
    {"type": "res", "id": "...", "ok": true, "payload": {"type": "hello-ok", ...}}
    {"type": "event", "event": "connect.challenge", "payload": {"nonce": "...", "ts": 1000}}
    {"type": "invoke", "id": "...", "command": "file.read", "params": {...}}
    {"type": "invoke-res", "id": "...", "ok": true, "payload": {...}}
    {"type": "ping"} / {"type": "pong"}
"""

from __future__ import annotations

import json
import uuid
from typing import Any

from garden_bridge.protocol.constants import FrameType
from garden_bridge.protocol.envelope import CommandResult


class FrameDecodeError(ValueError):
    """Raised when a socket message is not a well-formed frame."""


def decode_frame(raw: str | bytes) -> dict[str, Any]:
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise FrameDecodeError(f"Frame is not UTF-8: {exc}") from exc
    try:
        frame = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise FrameDecodeError(f"Frame is not JSON: {exc.msg}") from exc
    if not isinstance(frame, dict) or not isinstance(frame.get("type"), str):
        raise FrameDecodeError("Frame must be an object with a string 'type'")
    return frame


def encode_frame(frame: dict[str, Any]) -> str:
    return json.dumps(frame, separators=(",", ":"), default=str)


def request_frame(method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
    frame: dict[str, Any] = {"type": FrameType.REQUEST.value, "id": str(uuid.uuid4()), "method": method}
    if params is not None:
        frame["params"] = params
    return frame


def invoke_result_frame(invoke_id: str, result: CommandResult) -> dict[str, Any]:
    return {"type": FrameType.INVOKE_RESULT.value, "id": invoke_id, **result.to_wire()}


def ping_frame() -> dict[str, Any]:
    return {"type": FrameType.PING.value}


def pong_frame() -> dict[str, Any]:
    return {"type": FrameType.PONG.value}
