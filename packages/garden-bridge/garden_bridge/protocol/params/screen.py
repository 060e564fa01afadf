"""Typed parameter models for the ``screen`` and ``camera`` capabilities."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import Field, field_validator

from garden_bridge.protocol.params.base import WireParams


class ScreenCaptureParams(WireParams):
    display: Annotated[int, Field(ge=0)] | None = Field(
        default=None, description="Display index from screen.list; omitted = main display."
    )
    format: Literal["png", "jpeg", "jpg", "tiff"] = "png"
    quality: Annotated[float, Field(ge=0.0, le=1.0)] = Field(
        default=0.9, description="JPEG quality, 0.0-1.0."
    )

    @field_validator("format", mode="before")
    @classmethod
    def lower_format(cls, v: object) -> object:
        return v.lower() if isinstance(v, str) else v


class CameraSnapParams(WireParams):
    camera: int | str | None = Field(default=None, description="Camera id from camera.list.")
    format: Literal["jpeg", "jpg", "png"] = "jpeg"
    quality: Annotated[float, Field(ge=0.0, le=1.0)] = 0.9
    warmup: Annotated[float, Field(ge=0.0, le=5.0)] = Field(
        default=0.5, description="Seconds to let exposure settle before grabbing."
    )

    @field_validator("camera", mode="after")
    @classmethod
    def camera_as_str(cls, v: int | str | None) -> str | None:
        return str(v) if v is not None else None

    @field_validator("format", mode="before")
    @classmethod
    def lower_format(cls, v: object) -> object:
        return v.lower() if isinstance(v, str) else v
