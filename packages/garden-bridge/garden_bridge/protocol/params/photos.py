"""Typed parameter models for the ``photos`` capability."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Literal

from pydantic import Field, field_validator, model_validator

from garden_bridge.protocol.params.base import WireParams


class _PhotoRangeParams(WireParams):
    start_date: datetime | None = None
    end_date: datetime | None = None
    limit: Annotated[int, Field(ge=1, le=500)] = 50

    @field_validator("start_date", "end_date", mode="after")
    @classmethod
    def utc_naive_dates(cls, v: datetime | None) -> datetime | None:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class PhotoListParams(_PhotoRangeParams):
    album: str | None = Field(default=None, description="Album id from photos.getAlbums.")


class PhotoSearchParams(_PhotoRangeParams):
    latitude: Annotated[float, Field(ge=-90, le=90)] | None = None
    longitude: Annotated[float, Field(ge=-180, le=180)] | None = None
    radius: Annotated[float, Field(gt=0)] = Field(default=1000.0, description="Metres around the point.")

    @model_validator(mode="after")
    def point_is_complete(self) -> PhotoSearchParams:
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be given together")
        return self


class PhotoGetParams(WireParams):
    id: str = Field(min_length=1)
    format: Literal["jpeg", "jpg", "png", "tiff"] = "jpeg"
    size: Annotated[int, Field(ge=16, le=8192)] | None = Field(
        default=None, description="Longest edge in pixels; aspect ratio is kept."
    )
    quality: Annotated[float, Field(ge=0.0, le=1.0)] = 0.9

    @field_validator("format", mode="before")
    @classmethod
    def lower_format(cls, v: object) -> object:
        return v.lower() if isinstance(v, str) else v


class PhotoAlbumsParams(WireParams):
    type: Literal["all", "user", "smart"] = "all"
