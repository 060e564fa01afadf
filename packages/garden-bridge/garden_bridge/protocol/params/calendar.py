"""Typed parameter models for the ``calendar`` and ``reminders`` capabilities.

Dates are ISO-8601 strings on the wire.  A date without an offset is taken
as local time.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from pydantic import Field, field_validator

from garden_bridge.protocol.params.base import WireParams


class _DatedParams(WireParams):
    @field_validator("*", mode="after")
    @classmethod
    def localize_naive_dates(cls, v: object) -> object:
        if isinstance(v, datetime) and v.tzinfo is None:
            return v.astimezone()
        return v


class CalendarListParams(_DatedParams):
    start_date: datetime | None = Field(default=None, description="Range start; default now.")
    end_date: datetime | None = Field(default=None, description="Range end; default start + 7 days.")
    calendar: str | None = Field(default=None, description="Calendar id or title.")


class CalendarCreateParams(_DatedParams):
    title: str = Field(min_length=1)
    start_date: datetime
    end_date: datetime | None = Field(default=None, description="Default start + 1 hour.")
    calendar: str | None = None
    location: str | None = None
    notes: str | None = None
    url: str | None = None
    is_all_day: bool = False


class CalendarUpdateParams(_DatedParams):
    id: str = Field(min_length=1)
    title: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    location: str | None = None
    notes: str | None = None
    url: str | None = None
    is_all_day: bool | None = None


class IdParams(WireParams):
    id: str = Field(min_length=1)


class ReminderListParams(WireParams):
    list_name: str | None = Field(default=None, alias="list", description="Reminder list id or title.")
    include_completed: bool = False


class ReminderCreateParams(_DatedParams):
    title: str = Field(min_length=1)
    list_name: str | None = Field(default=None, alias="list")
    notes: str | None = None
    due_date: datetime | None = None
    priority: Annotated[int, Field(ge=0, le=9)] = 0


class ReminderCompleteParams(WireParams):
    id: str = Field(min_length=1)
    completed: bool = True
