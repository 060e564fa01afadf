"""Typed parameter models for the ``audio`` capability."""

from __future__ import annotations

from typing import Annotated

from pydantic import Field, field_validator

from garden_bridge.protocol.params.base import WireParams

MIN_DURATION = 1.0
MAX_DURATION = 300.0


class AudioRecordParams(WireParams):
    duration: float = Field(default=5.0, description="Seconds, clamped to 1-300.")
    format: str = Field(default="wav", description="Container format; only 'wav' is produced.")
    device: int | str | None = Field(default=None, description="Input device id or name.")
    sample_rate: Annotated[int, Field(ge=8000, le=192000)] = 44100
    channels: Annotated[int, Field(ge=1, le=2)] = 1

    @field_validator("duration", mode="after")
    @classmethod
    def clamp_duration(cls, v: float) -> float:
        return min(max(v, MIN_DURATION), MAX_DURATION)

    @field_validator("format", mode="before")
    @classmethod
    def lower_format(cls, v: object) -> object:
        return v.lower() if isinstance(v, str) else v
