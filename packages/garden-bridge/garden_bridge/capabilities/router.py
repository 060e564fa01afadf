"""Capability layer — CommandRouter.

Resolves a command to a handler by first literal prefix match over an
ordered, immutable registration list, and converts every outcome into a
``CommandResult``.  ``route`` never raises: a handler fault becomes an
``INTERNAL_ERROR`` envelope, never a crashed dispatch loop.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from garden_bridge.capabilities.base import CapabilityHandler, CommandExecutor
from garden_bridge.exceptions import CommandError
from garden_bridge.logging import bind_invocation_context, get_logger
from garden_bridge.protocol.constants import ErrorCode
from garden_bridge.protocol.envelope import CommandRequest, CommandResult

log = get_logger(__name__)


@dataclass(frozen=True)
class Registration:
    prefix: str
    handler: CommandExecutor


class CommandRouter:
    """Ordered prefix → handler table.

    Usage::

        router = CommandRouter.from_handlers([FileHandler(), ShellHandler()])
        result = await router.route("file.exists", {"path": "/"})
        result.to_wire()  # {"ok": True, "payload": {...}}
    """

    def __init__(self, registrations: Iterable[Registration | tuple[str, CommandExecutor]]) -> None:
        table: list[Registration] = []
        seen: set[str] = set()
        for item in registrations:
            reg = item if isinstance(item, Registration) else Registration(*item)
            if not reg.prefix:
                raise ValueError("Registration prefix must not be empty")
            if reg.prefix in seen:
                raise ValueError(f"Duplicate command prefix: {reg.prefix!r}")
            seen.add(reg.prefix)
            table.append(reg)
        self._registrations: tuple[Registration, ...] = tuple(table)

    @classmethod
    def from_handlers(cls, handlers: Iterable[CapabilityHandler]) -> CommandRouter:
        return cls(Registration(h.prefix, h) for h in handlers)

    @property
    def registrations(self) -> tuple[Registration, ...]:
        return self._registrations

    def resolve(self, command: str) -> Registration | None:
        for reg in self._registrations:
            if command.startswith(reg.prefix):
                return reg
        return None

    def handlers(self) -> list[CapabilityHandler]:
        return [r.handler for r in self._registrations if isinstance(r.handler, CapabilityHandler)]

    def capabilities(self) -> list[str]:
        return [r.prefix.rstrip(".") for r in self._registrations]

    def commands(self) -> list[str]:
        names: list[str] = []
        for handler in self.handlers():
            names.extend(handler.command_names())
        return names

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def route_request(self, request: CommandRequest) -> CommandResult:
        bind_invocation_context(request_id=request.id)
        return await self.route(request.command, request.params)

    async def route(self, command: str, params: Mapping[str, Any] | None = None) -> CommandResult:
        bind_invocation_context(command=command)
        start = time.perf_counter()

        reg = self.resolve(command)
        if reg is None:
            log.info("command_unknown", command=command)
            return CommandResult.failure(ErrorCode.UNKNOWN_COMMAND, f"Unknown command: {command}")

        if params is None:
            params = {}
        if not isinstance(params, Mapping):
            return CommandResult.failure(ErrorCode.INVALID_PARAMS, "params must be an object")

        try:
            outcome = await reg.handler.execute(command, dict(params))
        except CommandError as exc:
            result = CommandResult.failure(exc.code, exc.message)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            log.exception("command_crashed", command=command, error=str(exc))
            result = CommandResult.failure(
                ErrorCode.INTERNAL_ERROR, f"{type(exc).__name__}: {exc}"
            )
        else:
            result = outcome if isinstance(outcome, CommandResult) else CommandResult.success(outcome)

        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        if result.ok:
            log.info("command_routed", command=command, duration_ms=duration_ms)
        else:
            log.info(
                "command_failed",
                command=command,
                code=result.code,
                duration_ms=duration_ms,
            )
        return result
