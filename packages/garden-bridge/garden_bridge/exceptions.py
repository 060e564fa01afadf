"""GardenBridge — Exception hierarchy.

All exceptions raised by the bridge inherit from BridgeError so that callers
can catch the full family with a single except clause when needed.

Hierarchy:
    BridgeError
    ├── ConfigurationError
    ├── CommandError
    ├── ResourceError
    │   └── ResourceNotFoundError
    ├── GatewayError
    │   ├── SessionStateError
    │   └── HandshakeError
    └── IdentityError
"""

from __future__ import annotations

from typing import Any

from garden_bridge.protocol.constants import ErrorCode


class BridgeError(Exception):
    """Base exception for all GardenBridge errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = context or {}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context})"


class ConfigurationError(BridgeError):
    """Settings could not be loaded or are inconsistent."""


# ---------------------------------------------------------------------------
# Command layer
# ---------------------------------------------------------------------------


class CommandError(BridgeError):
    """A structured command failure carrying a stable machine-readable code.

    Raised by capability handlers; the router turns it into a failure
    envelope without touching ``code`` or ``message``.
    """

    def __init__(
        self, code: str | ErrorCode, message: str, context: dict[str, Any] | None = None
    ) -> None:
        self.code = code.value if isinstance(code, ErrorCode) else code
        super().__init__(message, context={"code": self.code, **(context or {})})

    @classmethod
    def unknown_command(cls, command: str, namespace: str | None = None) -> CommandError:
        if namespace:
            return cls(ErrorCode.UNKNOWN_COMMAND, f"Unknown {namespace} command: {command}")
        return cls(ErrorCode.UNKNOWN_COMMAND, f"Unknown command: {command}")

    @classmethod
    def invalid_params(cls, field: str) -> CommandError:
        return cls(
            ErrorCode.INVALID_PARAMS,
            f"Missing or invalid parameter: {field}",
            context={"field": field},
        )

    @classmethod
    def not_found(cls, message: str) -> CommandError:
        return cls(ErrorCode.NOT_FOUND, message)

    @classmethod
    def permission_denied(
        cls,
        permission: str,
        namespace: str | None = None,
        code: str | ErrorCode = ErrorCode.PERMISSION_DENIED,
    ) -> CommandError:
        scope = f" for {namespace} commands" if namespace else ""
        return cls(
            code,
            f"Permission '{permission}' not granted{scope}",
            context={"permission": permission},
        )

    @classmethod
    def not_implemented(cls, what: str) -> CommandError:
        return cls(ErrorCode.NOT_IMPLEMENTED, f"{what} is not available on this host")


# ---------------------------------------------------------------------------
# Resource layer
# ---------------------------------------------------------------------------


class ResourceError(BridgeError):
    """Base for ephemeral resource store errors."""


class ResourceNotFoundError(ResourceError):
    """The resource id is unknown or its retention window has elapsed."""

    def __init__(self, resource_id: str) -> None:
        super().__init__(
            f"Resource not found: {resource_id}", context={"resource_id": resource_id}
        )
        self.resource_id = resource_id


# ---------------------------------------------------------------------------
# Gateway layer
# ---------------------------------------------------------------------------


class GatewayError(BridgeError):
    """Base for gateway connection errors."""


class SessionStateError(GatewayError):
    """A pairing session transition was requested from the wrong state."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            f"Invalid session transition: {current} -> {target}",
            context={"current": current, "target": target},
        )
        self.current = current
        self.target = target


class HandshakeError(GatewayError):
    """The remote gateway rejected the connect request or never answered it."""


class IdentityError(BridgeError):
    """The device keypair could not be created or persisted."""
