"""API layer — Response schemas for the introspection endpoints.

``/invoke`` and the resource routes answer with the command envelope or raw
bytes; only ``/health`` and ``/commands`` have dedicated models.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GatewayStatus(_CamelModel):
    enabled: bool
    url: str | None = None
    state: str = "disconnected"
    reason: str | None = None
    paired: bool = False
    device_id: str | None = None


class CapabilityStatus(BaseModel):
    available: list[str] = Field(default_factory=list)
    failed: dict[str, str] = Field(default_factory=dict)
    platform_excluded: dict[str, str] = Field(default_factory=dict)


class HealthResponse(_CamelModel):
    status: str = "ok"
    version: str
    protocol_version: int
    uptime_seconds: float
    gateway: GatewayStatus
    capabilities: CapabilityStatus
    resources: int = Field(description="Number of live ephemeral resources.")


class CommandsResponse(BaseModel):
    capabilities: list[dict[str, Any]]
    commands: list[str]
