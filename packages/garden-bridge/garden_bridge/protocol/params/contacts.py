"""Typed parameter models for the ``contacts`` capability."""

from __future__ import annotations

from typing import Annotated

from pydantic import Field

from garden_bridge.protocol.params.base import WireParams


class ContactSearchParams(WireParams):
    query: str = Field(min_length=1, description="Matched against name, email, phone and organization.")
    limit: Annotated[int, Field(ge=1, le=500)] = 50


class ContactGetParams(WireParams):
    id: str = Field(min_length=1)


class ContactBirthdaysParams(WireParams):
    days: Annotated[int, Field(ge=0, le=366)] = Field(
        default=30, description="Look-ahead window in days."
    )
