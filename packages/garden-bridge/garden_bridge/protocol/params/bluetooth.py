"""Typed parameter models for the ``bluetooth`` capability."""

from __future__ import annotations

from pydantic import Field, field_validator

from garden_bridge.protocol.params.base import WireParams

MIN_SCAN = 1.0
MAX_SCAN = 60.0


class BluetoothScanParams(WireParams):
    duration: float = Field(default=5.0, description="Seconds, clamped to 1-60.")
    service_uuids: list[str] | None = Field(
        default=None, alias="serviceUUIDs", description="Only report peripherals advertising these services."
    )

    @field_validator("duration", mode="after")
    @classmethod
    def clamp_duration(cls, v: float) -> float:
        return min(max(v, MIN_SCAN), MAX_SCAN)
