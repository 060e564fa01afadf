"""Calendar capability — events in a ``CalendarService`` backend."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from garden_bridge.capabilities.base import CapabilityHandler, Platform, service_call
from garden_bridge.exceptions import CommandError
from garden_bridge.permissions import PermissionGate
from garden_bridge.protocol.params.base import NoParams
from garden_bridge.protocol.params.calendar import (
    CalendarCreateParams,
    CalendarListParams,
    CalendarUpdateParams,
    IdParams,
)
from garden_bridge.services.calendar import CalendarService, MemoryCalendarService

DEFAULT_RANGE = timedelta(days=7)
DEFAULT_EVENT_LENGTH = timedelta(hours=1)


class CalendarHandler(CapabilityHandler):
    NAMESPACE = "calendar"
    VERSION = "1.0.0"
    SUPPORTED_PLATFORMS = [Platform.ALL]
    PERMISSION = "calendar"
    COMMANDS = {
        "list": CalendarListParams,
        "create": CalendarCreateParams,
        "update": CalendarUpdateParams,
        "delete": IdParams,
        "getCalendars": NoParams,
    }

    def __init__(
        self,
        service: CalendarService | None = None,
        permissions: PermissionGate | None = None,
    ) -> None:
        super().__init__(permissions)
        self._service = service or MemoryCalendarService()

    async def _action_list(self, p: CalendarListParams) -> dict[str, Any]:
        start = p.start_date or datetime.now().astimezone()
        end = p.end_date or start + DEFAULT_RANGE
        if end < start:
            raise CommandError.invalid_params("endDate")
        with service_call(self.NAMESPACE):
            events = await self._service.list_events(start, end, p.calendar)
        return {"events": [e.to_dict() for e in events], "count": len(events)}

    async def _action_create(self, p: CalendarCreateParams) -> dict[str, Any]:
        end = p.end_date or p.start_date + DEFAULT_EVENT_LENGTH
        if end < p.start_date:
            raise CommandError.invalid_params("endDate")
        with service_call(self.NAMESPACE):
            event = await self._service.create_event(
                p.title,
                p.start_date,
                end,
                p.calendar,
                location=p.location,
                notes=p.notes,
                url=p.url,
                is_all_day=p.is_all_day,
            )
        return {"success": True, "event": event.to_dict()}

    async def _action_update(self, p: CalendarUpdateParams) -> dict[str, Any]:
        changes = {
            "title": p.title,
            "start": p.start_date,
            "end": p.end_date,
            "location": p.location,
            "notes": p.notes,
            "url": p.url,
            "is_all_day": p.is_all_day,
        }
        with service_call(self.NAMESPACE):
            event = await self._service.update_event(p.id, **changes)
        return {"success": True, "event": event.to_dict()}

    async def _action_delete(self, p: IdParams) -> dict[str, Any]:
        with service_call(self.NAMESPACE):
            await self._service.delete_event(p.id)
        return {"success": True, "id": p.id}

    async def _action_get_calendars(self, p: NoParams) -> dict[str, Any]:
        with service_call(self.NAMESPACE):
            calendars = await self._service.list_calendars()
        return {"calendars": [c.to_dict() for c in calendars], "count": len(calendars)}
