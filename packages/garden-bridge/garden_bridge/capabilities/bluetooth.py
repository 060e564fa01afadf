"""Bluetooth capability — adapter state and BLE discovery.

The adapter is pluggable.  The default one reports the radio as
``unsupported`` so scans fail with ``BLUETOOTH_UNSUPPORTED``; a platform
adapter reports a live state.  Devices seen by the last scan are cached for
``bluetooth.devices``.
"""

from __future__ import annotations

import asyncio
from typing import Any, Protocol

from garden_bridge.capabilities.base import CapabilityHandler, Platform
from garden_bridge.exceptions import CommandError
from garden_bridge.logging import get_logger
from garden_bridge.permissions import PermissionGate
from garden_bridge.protocol.constants import ErrorCode
from garden_bridge.protocol.params.base import NoParams
from garden_bridge.protocol.params.bluetooth import BluetoothScanParams

log = get_logger(__name__)

POWERED_ON = "poweredOn"

# adapter state -> failure code for anything but poweredOn
_STATE_CODES = {
    "poweredOff": "BLUETOOTH_POWERED_OFF",
    "unsupported": "BLUETOOTH_UNSUPPORTED",
}


class BluetoothAdapter(Protocol):
    async def state(self) -> str:
        """One of poweredOn, poweredOff, unauthorized, unsupported, resetting, unknown."""
        ...

    async def authorization(self) -> str: ...

    async def scan(self, duration: float, service_uuids: list[str] | None) -> list[dict[str, Any]]:
        """Return ``[{id, name, rssi, ...}]`` for peripherals seen within *duration* seconds."""
        ...


class UnsupportedBluetoothAdapter:
    async def state(self) -> str:
        return "unsupported"

    async def authorization(self) -> str:
        return "notDetermined"

    async def scan(self, duration: float, service_uuids: list[str] | None) -> list[dict[str, Any]]:
        raise CommandError.not_implemented("Bluetooth scanning")


class BluetoothHandler(CapabilityHandler):
    NAMESPACE = "bluetooth"
    VERSION = "1.0.0"
    SUPPORTED_PLATFORMS = [Platform.ALL]
    PERMISSION = "bluetooth"
    COMMANDS = {
        "status": NoParams,
        "scan": BluetoothScanParams,
        "devices": NoParams,
    }

    def __init__(
        self,
        permissions: PermissionGate | None = None,
        adapter: BluetoothAdapter | None = None,
        scan_grace: float = 5.0,
    ) -> None:
        super().__init__(permissions)
        self._adapter = adapter or UnsupportedBluetoothAdapter()
        self._scan_grace = scan_grace
        self._scanning = asyncio.Lock()
        self._discovered: dict[str, dict[str, Any]] = {}

    async def _require_powered_on(self) -> None:
        state = await self._adapter.state()
        if state == POWERED_ON:
            return
        if state == "unauthorized":
            raise CommandError.permission_denied(self.PERMISSION, self.NAMESPACE)
        code = _STATE_CODES.get(state, "BLUETOOTH_UNAVAILABLE")
        raise CommandError(code, f"Bluetooth is not available (state: {state})")

    async def _action_status(self, p: NoParams) -> dict[str, Any]:
        state = await self._adapter.state()
        return {
            "state": state,
            "poweredOn": state == POWERED_ON,
            "authorization": await self._adapter.authorization(),
        }

    async def _action_scan(self, p: BluetoothScanParams) -> dict[str, Any]:
        await self._require_powered_on()
        # Scans share the radio; a second request waits for the first.
        async with self._scanning:
            try:
                devices = await asyncio.wait_for(
                    self._adapter.scan(p.duration, p.service_uuids),
                    timeout=p.duration + self._scan_grace,
                )
            except asyncio.TimeoutError:
                raise CommandError(
                    ErrorCode.TIMEOUT, f"Bluetooth scan did not finish within {p.duration}s"
                ) from None
            self._discovered = {str(d["id"]): d for d in devices}
        log.info("bluetooth_scan", duration=p.duration, found=len(devices))
        return {"devices": list(self._discovered.values()), "count": len(self._discovered), "duration": p.duration}

    async def _action_devices(self, p: NoParams) -> dict[str, Any]:
        devices = list(self._discovered.values())
        return {"devices": devices, "count": len(devices)}
