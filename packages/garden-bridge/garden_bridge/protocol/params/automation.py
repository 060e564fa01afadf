"""Typed parameter models for ``applescript``, ``accessibility`` and ``notification``."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import Field

from garden_bridge.protocol.params.base import WireParams


class AppleScriptParams(WireParams):
    script: str = Field(min_length=1)
    timeout: Annotated[float, Field(gt=0, le=600)] = 30.0


class ClickParams(WireParams):
    x: float
    y: float
    click_type: Literal["left", "right", "middle"] = "left"
    click_count: Annotated[int, Field(ge=1, le=10)] = 1


class TypeTextParams(WireParams):
    text: str
    delay: Annotated[int, Field(ge=0, le=5000)] = Field(
        default=0, description="Milliseconds between keystrokes."
    )


class PointParams(WireParams):
    x: float
    y: float


class WindowListParams(WireParams):
    app: str | None = Field(default=None, description="Only windows whose title or app matches.")


class NotificationParams(WireParams):
    title: str = Field(min_length=1)
    body: str | None = None
    subtitle: str | None = None
    sound: bool = True
    id: str | None = Field(default=None, description="Caller-chosen id; generated when absent.")
