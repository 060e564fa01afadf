"""GardenBridge — Local automation bridge exposing host capabilities.

GardenBridge routes dot-namespaced commands (``file.read``, ``screen.capture``,
``calendar.list`` ...) to capability handlers and answers every invocation
with the same ``{ok, payload, error}`` envelope.

Architecture layers (bottom to top):
    1. Protocol     — Response envelope, gateway frames, typed param models
    2. Resources    — Ephemeral store for screenshots, photos and audio
    3. Capabilities — One handler per namespace behind the CommandRouter
    4. Gateway      — Device identity, pairing session, WebSocket client
    5. API/SDK      — FastAPI ``POST /invoke`` listener, httpx client, CLI
"""

__version__ = "0.4.0"
__protocol_version__ = 3
__author__ = "GardenBridge Contributors"
__license__ = "Apache-2.0"

from garden_bridge.protocol.envelope import CommandRequest, CommandResult

__all__ = [
    "__version__",
    "__protocol_version__",
    "CommandRequest",
    "CommandResult",
]
