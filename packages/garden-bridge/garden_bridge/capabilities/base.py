"""Capability layer — CapabilityHandler interface.

Every capability namespace (``file``, ``screen``, ``calendar`` ...) is one
``CapabilityHandler`` subclass.  Handlers know nothing about each other or
about the transports; the router hands them ``(command, params)`` and turns
whatever they return or raise into the response envelope.

Design principles:
  - Commands are declared in ``COMMANDS`` with their param model.  Command
    ``"getCalendars"`` dispatches to ``_action_get_calendars``.
  - Params are validated before the action runs; an action receives its
    typed model, never the raw mapping.
  - Expected failures are raised as ``CommandError(code, message)``.
  - Blocking platform calls run in ``asyncio.to_thread``.
  - A handler may serialize its own hardware state (one recording at a
    time) but never shares mutable state with another handler.
"""

from __future__ import annotations

import platform
import re
from abc import ABC
from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum
from typing import Any, ClassVar, Protocol, runtime_checkable

from pydantic import BaseModel, ValidationError

from garden_bridge.exceptions import CommandError
from garden_bridge.permissions import PermissionGate
from garden_bridge.protocol.constants import ErrorCode
from garden_bridge.services.base import ItemNotFoundError, ServiceError, ServiceUnavailableError


class Platform(str, Enum):
    LINUX = "linux"
    WINDOWS = "windows"
    MACOS = "macos"
    ALL = "all"


@runtime_checkable
class CommandExecutor(Protocol):
    """Anything the router can delegate a command to."""

    async def execute(self, command: str, params: dict[str, Any]) -> Any: ...


def action_method_name(command_name: str) -> str:
    """``"getCalendars"`` -> ``"_action_get_calendars"``."""
    snake = re.sub(r"(?<!^)(?=[A-Z])", "_", command_name).lower()
    return f"_action_{snake}"


def current_platform() -> Platform | None:
    mapping = {
        "linux": Platform.LINUX,
        "windows": Platform.WINDOWS,
        "darwin": Platform.MACOS,
    }
    return mapping.get(platform.system().lower())


class CapabilityHandler(ABC):
    """Abstract base class for capability handlers.

    Subclasses must:
      1. Set ``NAMESPACE`` (e.g. ``"file"``)
      2. Declare ``COMMANDS``: command name → param model
      3. Implement ``_action_<snake_name>(self, p)`` for each command
      4. Optionally set ``PERMISSION`` and ``PERMISSION_DENIED_CODE``
      5. Optionally implement :meth:`_check_dependencies`
    """

    NAMESPACE: ClassVar[str] = ""
    VERSION: ClassVar[str] = "1.0.0"
    SUPPORTED_PLATFORMS: ClassVar[list[Platform]] = [Platform.ALL]
    PERMISSION: ClassVar[str | None] = None
    PERMISSION_DENIED_CODE: ClassVar[str] = ErrorCode.PERMISSION_DENIED.value
    COMMANDS: ClassVar[dict[str, type[BaseModel]]] = {}

    def __init__(self, permissions: PermissionGate | None = None) -> None:
        self._permissions = permissions
        self._check_dependencies()

    @property
    def prefix(self) -> str:
        return f"{self.NAMESPACE}."

    def command_names(self) -> list[str]:
        return [f"{self.NAMESPACE}.{name}" for name in self.COMMANDS]

    def is_supported_on_current_platform(self) -> bool:
        if Platform.ALL in self.SUPPORTED_PLATFORMS:
            return True
        return current_platform() in self.SUPPORTED_PLATFORMS

    def _check_dependencies(self) -> None:
        """Raise ``CommandError`` / ``ImportError`` if a hard dependency is missing.

        Called in ``__init__``.  Default implementation does nothing.
        """

    def manifest(self) -> dict[str, Any]:
        """Describe the namespace and the JSON schema of every command's params."""
        return {
            "namespace": self.NAMESPACE,
            "version": self.VERSION,
            "permission": self.PERMISSION,
            "commands": {
                f"{self.NAMESPACE}.{name}": model.model_json_schema(by_alias=True)
                for name, model in self.COMMANDS.items()
            },
        }

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def execute(self, command: str, params: dict[str, Any]) -> Any:
        """Dispatch *command* to its ``_action_<name>`` method.

        Returns:
            A JSON-compatible payload.

        Raises:
            CommandError: Unknown command, denied permission, invalid params,
                or a domain failure raised by the action itself.
        """
        name = command[len(self.prefix):] if command.startswith(self.prefix) else None
        model = self.COMMANDS.get(name) if name else None
        handler = getattr(self, action_method_name(name), None) if model and name else None
        if handler is None:
            raise CommandError.unknown_command(command, self.NAMESPACE)

        self._require_permission()
        return await handler(self._parse(model, params))

    def _require_permission(self) -> None:
        if self.PERMISSION is None or self._permissions is None:
            return
        if not self._permissions.is_granted(self.PERMISSION):
            raise CommandError.permission_denied(
                self.PERMISSION, self.NAMESPACE, code=self.PERMISSION_DENIED_CODE
            )

    @staticmethod
    def _parse(model: type[BaseModel], params: dict[str, Any]) -> Any:
        try:
            return model.model_validate(params)
        except ValidationError as exc:
            errors = exc.errors()
            loc = errors[0].get("loc", ()) if errors else ()
            field = ".".join(str(part) for part in loc) or "params"
            raise CommandError.invalid_params(field) from exc


@contextmanager
def service_call(namespace: str) -> Iterator[None]:
    """Translate backend ``ServiceError`` subclasses into command failures."""
    try:
        yield
    except ItemNotFoundError as exc:
        raise CommandError.not_found(exc.message) from exc
    except ServiceUnavailableError as exc:
        raise CommandError(f"{namespace.upper()}_UNAVAILABLE", exc.message) from exc
    except ServiceError as exc:
        raise CommandError(exc.code or f"{namespace.upper()}_ERROR", exc.message) from exc
