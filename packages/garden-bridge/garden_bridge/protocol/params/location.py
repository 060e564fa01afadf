"""Typed parameter models for the ``location`` capability."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import Field

from garden_bridge.protocol.params.base import WireParams


class LocationGetParams(WireParams):
    accuracy: Literal["best", "nearest", "kilometer", "reduced"] = "best"
    timeout: Annotated[float, Field(gt=0, le=120)] = Field(
        default=10.0, description="Seconds to wait for a fix before TIMEOUT."
    )
