"""Service layer — calendar and reminder stores.

``CalendarService`` / ``ReminderService`` are the boundary the handlers
consume.  The in-memory implementations keep data for the life of the
process; platform backends (EventKit, CalDAV) plug in behind the same
interface.
"""

from __future__ import annotations

import asyncio
import uuid
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, replace
from datetime import datetime
from typing import Any

from garden_bridge.services.base import ItemNotFoundError


@dataclass
class Calendar:
    id: str
    title: str
    color: str | None = None
    writable: bool = True

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class CalendarEvent:
    id: str
    title: str
    start: datetime
    end: datetime
    calendar_id: str
    calendar: str
    location: str | None = None
    notes: str | None = None
    url: str | None = None
    is_all_day: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "startDate": self.start.isoformat(),
            "endDate": self.end.isoformat(),
            "calendar": self.calendar,
            "calendarId": self.calendar_id,
            "location": self.location,
            "notes": self.notes,
            "url": self.url,
            "isAllDay": self.is_all_day,
        }


@dataclass
class ReminderList:
    id: str
    title: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class Reminder:
    id: str
    title: str
    list_id: str
    list_title: str
    notes: str | None = None
    due: datetime | None = None
    priority: int = 0
    completed: bool = False
    completed_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "list": self.list_title,
            "listId": self.list_id,
            "notes": self.notes,
            "dueDate": self.due.isoformat() if self.due else None,
            "priority": self.priority,
            "completed": self.completed,
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
        }


# ---------------------------------------------------------------------------
# Interfaces
# ---------------------------------------------------------------------------


class CalendarService(ABC):
    @abstractmethod
    async def list_calendars(self) -> list[Calendar]: ...

    @abstractmethod
    async def list_events(
        self, start: datetime, end: datetime, calendar: str | None = None
    ) -> list[CalendarEvent]: ...

    @abstractmethod
    async def create_event(
        self,
        title: str,
        start: datetime,
        end: datetime,
        calendar: str | None = None,
        **fields: Any,
    ) -> CalendarEvent: ...

    @abstractmethod
    async def update_event(self, event_id: str, **changes: Any) -> CalendarEvent: ...

    @abstractmethod
    async def delete_event(self, event_id: str) -> None: ...


class ReminderService(ABC):
    @abstractmethod
    async def list_lists(self) -> list[ReminderList]: ...

    @abstractmethod
    async def list_reminders(
        self, list_name: str | None = None, include_completed: bool = False
    ) -> list[Reminder]: ...

    @abstractmethod
    async def create_reminder(self, title: str, list_name: str | None = None, **fields: Any) -> Reminder: ...

    @abstractmethod
    async def set_completed(self, reminder_id: str, completed: bool) -> Reminder: ...

    @abstractmethod
    async def delete_reminder(self, reminder_id: str) -> None: ...


# ---------------------------------------------------------------------------
# In-memory implementations
# ---------------------------------------------------------------------------


def _match(title_or_id: str, item_id: str, title: str) -> bool:
    return title_or_id == item_id or title_or_id.casefold() == title.casefold()


class MemoryCalendarService(CalendarService):
    def __init__(self, calendars: list[Calendar] | None = None) -> None:
        self._calendars = calendars or [Calendar(id="default", title="Calendar")]
        self._events: dict[str, CalendarEvent] = {}
        self._lock = asyncio.Lock()

    def _calendar(self, name: str | None) -> Calendar:
        if name is None:
            return self._calendars[0]
        for cal in self._calendars:
            if _match(name, cal.id, cal.title):
                return cal
        raise ItemNotFoundError("Calendar", name)

    async def list_calendars(self) -> list[Calendar]:
        return list(self._calendars)

    async def list_events(
        self, start: datetime, end: datetime, calendar: str | None = None
    ) -> list[CalendarEvent]:
        cal_id = self._calendar(calendar).id if calendar else None
        async with self._lock:
            events = [
                e
                for e in self._events.values()
                if e.start < end and e.end > start and (cal_id is None or e.calendar_id == cal_id)
            ]
        return sorted(events, key=lambda e: e.start)

    async def create_event(
        self,
        title: str,
        start: datetime,
        end: datetime,
        calendar: str | None = None,
        **fields: Any,
    ) -> CalendarEvent:
        cal = self._calendar(calendar)
        event = CalendarEvent(
            id=uuid.uuid4().hex,
            title=title,
            start=start,
            end=end,
            calendar_id=cal.id,
            calendar=cal.title,
            **fields,
        )
        async with self._lock:
            self._events[event.id] = event
        return event

    async def update_event(self, event_id: str, **changes: Any) -> CalendarEvent:
        async with self._lock:
            current = self._events.get(event_id)
            if current is None:
                raise ItemNotFoundError("Event", event_id)
            updated = replace(current, **{k: v for k, v in changes.items() if v is not None})
            self._events[event_id] = updated
        return updated

    async def delete_event(self, event_id: str) -> None:
        async with self._lock:
            if self._events.pop(event_id, None) is None:
                raise ItemNotFoundError("Event", event_id)


class MemoryReminderService(ReminderService):
    def __init__(self, lists: list[ReminderList] | None = None) -> None:
        self._lists = lists or [ReminderList(id="default", title="Reminders")]
        self._reminders: dict[str, Reminder] = {}
        self._lock = asyncio.Lock()

    def _list(self, name: str | None) -> ReminderList:
        if name is None:
            return self._lists[0]
        for lst in self._lists:
            if _match(name, lst.id, lst.title):
                return lst
        raise ItemNotFoundError("Reminder list", name)

    async def list_lists(self) -> list[ReminderList]:
        return list(self._lists)

    async def list_reminders(
        self, list_name: str | None = None, include_completed: bool = False
    ) -> list[Reminder]:
        list_id = self._list(list_name).id if list_name else None
        async with self._lock:
            return [
                r
                for r in self._reminders.values()
                if (list_id is None or r.list_id == list_id)
                and (include_completed or not r.completed)
            ]

    async def create_reminder(self, title: str, list_name: str | None = None, **fields: Any) -> Reminder:
        lst = self._list(list_name)
        reminder = Reminder(id=uuid.uuid4().hex, title=title, list_id=lst.id, list_title=lst.title, **fields)
        async with self._lock:
            self._reminders[reminder.id] = reminder
        return reminder

    async def set_completed(self, reminder_id: str, completed: bool) -> Reminder:
        async with self._lock:
            reminder = self._reminders.get(reminder_id)
            if reminder is None:
                raise ItemNotFoundError("Reminder", reminder_id)
            reminder.completed = completed
            reminder.completed_at = datetime.now().astimezone() if completed else None
            return reminder

    async def delete_reminder(self, reminder_id: str) -> None:
        async with self._lock:
            if self._reminders.pop(reminder_id, None) is None:
                raise ItemNotFoundError("Reminder", reminder_id)
