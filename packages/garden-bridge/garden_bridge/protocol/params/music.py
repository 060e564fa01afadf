"""Typed parameter models for the ``music`` capability."""

from __future__ import annotations

from typing import Annotated

from pydantic import Field, field_validator

from garden_bridge.protocol.params.base import WireParams


class MusicPlayParams(WireParams):
    track: str | None = Field(default=None, description="Search term; omitted = resume playback.")


class MusicVolumeParams(WireParams):
    volume: int = Field(description="0-100; values outside are clamped.")

    @field_validator("volume", mode="after")
    @classmethod
    def clamp_volume(cls, v: int) -> int:
        return min(max(v, 0), 100)


class MusicSearchParams(WireParams):
    query: str = Field(min_length=1)
    limit: Annotated[int, Field(ge=1, le=100)] = 10


class MusicPlaylistParams(WireParams):
    name: str = Field(min_length=1)
