"""Protocol layer — Wire constants shared by both transports."""

from __future__ import annotations

from enum import Enum

GATEWAY_PROTOCOL_VERSION = 3
CLIENT_ID = "garden-bridge"
CLIENT_MODE = "node"
CLIENT_ROLE = "node"

DEFAULT_GATEWAY_URL = "ws://127.0.0.1:18789"
DEFAULT_HTTP_PORT = 28790

HEADER_API_TOKEN = "X-Garden-Token"
HEADER_REQUEST_ID = "X-Request-ID"

CHALLENGE_EVENT = "connect.challenge"
HELLO_OK = "hello-ok"
CONNECT_METHOD = "connect"


class ErrorCode(str, Enum):
    """Global failure taxonomy.

    Handlers add their own domain codes (``TIMEOUT``, ``NO_CAMERA`` ...) as
    plain strings; the members below are the ones every layer may produce.
    """

    UNKNOWN_COMMAND = "UNKNOWN_COMMAND"
    INVALID_PARAMS = "INVALID_PARAMS"
    NOT_FOUND = "NOT_FOUND"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    NOT_IMPLEMENTED = "NOT_IMPLEMENTED"
    TIMEOUT = "TIMEOUT"
    INVALID_JSON = "INVALID_JSON"


class FrameType(str, Enum):
    REQUEST = "req"
    RESPONSE = "res"
    EVENT = "event"
    INVOKE = "invoke"
    INVOKE_RESULT = "invoke-res"
    PING = "ping"
    PONG = "pong"
