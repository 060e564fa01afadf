"""Gateway layer — outbound WebSocket connection to the controller gateway."""

from garden_bridge.gateway.client import GatewayClient
from garden_bridge.gateway.identity import DeviceIdentity, Signature, TokenStore
from garden_bridge.gateway.session import Challenge, PairingSession, SessionState

__all__ = [
    "Challenge",
    "DeviceIdentity",
    "GatewayClient",
    "PairingSession",
    "SessionState",
    "Signature",
    "TokenStore",
]
