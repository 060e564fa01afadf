"""Capability layer — Capability registry.

Collects the handlers the daemon will expose and reports on the ones it
could not.  It distinguishes:
  - ``failed``: the handler factory raised (missing dependency, bad config)
  - ``platform_excluded``: the handler does not support this OS

The registry is consulted once at startup to build the immutable
``CommandRouter``; registration order becomes routing order.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from garden_bridge.capabilities.base import CapabilityHandler, current_platform
from garden_bridge.capabilities.router import CommandRouter
from garden_bridge.logging import get_logger

log = get_logger(__name__)


class CapabilityRegistry:
    """Startup-time collection of capability handlers.

    Usage::

        registry = CapabilityRegistry()
        registry.register(FileHandler(permissions=gate))
        registry.load("camera", lambda: CameraHandler(store, base_url))
        router = registry.build_router()
    """

    def __init__(self, enforce_platform: bool = True) -> None:
        self._handlers: dict[str, CapabilityHandler] = {}
        self._failed: dict[str, str] = {}
        self._platform_excluded: dict[str, str] = {}
        self._enforce_platform = enforce_platform

    def register(self, handler: CapabilityHandler) -> bool:
        """Register a constructed handler.  Returns False if it was excluded."""
        namespace = handler.NAMESPACE
        if not namespace:
            raise ValueError(f"Handler {type(handler).__name__} has no NAMESPACE.")

        if self._enforce_platform and not handler.is_supported_on_current_platform():
            platform = current_platform()
            reason = (
                f"Platform '{platform.value if platform else 'unknown'}' is not in "
                f"SUPPORTED_PLATFORMS {[p.value for p in handler.SUPPORTED_PLATFORMS]}."
            )
            self._platform_excluded[namespace] = reason
            log.info("capability_platform_excluded", namespace=namespace, reason=reason)
            return False

        if namespace in self._handlers:
            log.warning("capability_already_registered", namespace=namespace)
        self._handlers[namespace] = handler
        self._failed.pop(namespace, None)
        log.debug("capability_registered", namespace=namespace, version=handler.VERSION)
        return True

    def load(self, namespace: str, factory: Callable[[], CapabilityHandler]) -> bool:
        """Construct a handler through *factory*, recording a failure instead of raising."""
        try:
            handler = factory()
        except Exception as exc:
            self.record_failure(namespace, str(exc))
            return False
        return self.register(handler)

    def record_failure(self, namespace: str, reason: str) -> None:
        self._failed[namespace] = reason
        log.error("capability_load_failed", namespace=namespace, reason=reason)

    def get(self, namespace: str) -> CapabilityHandler | None:
        return self._handlers.get(namespace)

    def is_available(self, namespace: str) -> bool:
        return namespace in self._handlers

    def list_available(self) -> list[str]:
        return list(self._handlers)

    def list_failed(self) -> dict[str, str]:
        return dict(self._failed)

    def list_platform_excluded(self) -> dict[str, str]:
        return dict(self._platform_excluded)

    def build_router(self) -> CommandRouter:
        return CommandRouter.from_handlers(self._handlers.values())

    def status_report(self) -> dict[str, Any]:
        return {
            "available": self.list_available(),
            "failed": self.list_failed(),
            "platform_excluded": self.list_platform_excluded(),
        }
