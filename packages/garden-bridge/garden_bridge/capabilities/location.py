"""Location capability — one position fix per request.

The provider answers through callbacks.  The first callback settles the
request; anything after it is ignored.  If nothing arrives within the
requested timeout the provider is stopped and the command fails with
``TIMEOUT``.
"""

from __future__ import annotations

import asyncio
from typing import Any

from garden_bridge.capabilities.base import CapabilityHandler, Platform
from garden_bridge.exceptions import CommandError
from garden_bridge.logging import get_logger
from garden_bridge.permissions import PermissionGate
from garden_bridge.protocol.constants import ErrorCode
from garden_bridge.protocol.params.location import LocationGetParams
from garden_bridge.services.location import LocationFix, LocationProvider
from garden_bridge.services.pending import PendingResult

log = get_logger(__name__)


class LocationHandler(CapabilityHandler):
    NAMESPACE = "location"
    VERSION = "1.0.0"
    SUPPORTED_PLATFORMS = [Platform.ALL]
    PERMISSION = "location"
    COMMANDS = {"get": LocationGetParams}

    def __init__(
        self,
        provider: LocationProvider,
        permissions: PermissionGate | None = None,
    ) -> None:
        super().__init__(permissions)
        self._provider = provider
        self._in_flight = asyncio.Lock()

    async def _action_get(self, p: LocationGetParams) -> dict[str, Any]:
        async with self._in_flight:
            pending: PendingResult[LocationFix] = PendingResult()
            try:
                self._provider.start(p.accuracy, pending.resolve, pending.reject)
                fix = await pending.wait(p.timeout)
            except asyncio.TimeoutError:
                log.warning("location_timeout", timeout=p.timeout)
                raise CommandError(
                    ErrorCode.TIMEOUT, f"Location request timed out after {p.timeout}s"
                ) from None
            except CommandError:
                raise
            except Exception as exc:
                raise CommandError("LOCATION_ERROR", f"Location failed: {exc}") from exc
            finally:
                self._provider.stop()
        return fix.to_dict()
