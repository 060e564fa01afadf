"""Contacts capability — lookups in a ``ContactsService`` backend."""

from __future__ import annotations

from datetime import date
from typing import Any

from garden_bridge.capabilities.base import CapabilityHandler, Platform, service_call
from garden_bridge.permissions import PermissionGate
from garden_bridge.protocol.params.contacts import (
    ContactBirthdaysParams,
    ContactGetParams,
    ContactSearchParams,
)
from garden_bridge.services.contacts import ContactsService, MemoryContactsService


def next_birthday(birthday: date, today: date) -> date:
    """Next occurrence of *birthday* on or after *today* (Feb 29 falls back to Feb 28)."""
    for year in (today.year, today.year + 1):
        try:
            candidate = birthday.replace(year=year)
        except ValueError:
            candidate = date(year, 2, 28)
        if candidate >= today:
            return candidate
    raise AssertionError("unreachable")


class ContactsHandler(CapabilityHandler):
    NAMESPACE = "contacts"
    VERSION = "1.0.0"
    SUPPORTED_PLATFORMS = [Platform.ALL]
    PERMISSION = "contacts"
    COMMANDS = {
        "search": ContactSearchParams,
        "get": ContactGetParams,
        "birthdays": ContactBirthdaysParams,
    }

    def __init__(
        self,
        service: ContactsService | None = None,
        permissions: PermissionGate | None = None,
    ) -> None:
        super().__init__(permissions)
        self._service = service or MemoryContactsService()

    async def _action_search(self, p: ContactSearchParams) -> dict[str, Any]:
        with service_call(self.NAMESPACE):
            contacts = await self._service.search(p.query, p.limit)
        return {"contacts": [c.to_dict() for c in contacts], "count": len(contacts)}

    async def _action_get(self, p: ContactGetParams) -> dict[str, Any]:
        with service_call(self.NAMESPACE):
            contact = await self._service.get(p.id)
        return {"contact": contact.to_dict()}

    async def _action_birthdays(self, p: ContactBirthdaysParams) -> dict[str, Any]:
        today = date.today()
        with service_call(self.NAMESPACE):
            contacts = await self._service.all_with_birthdays()

        upcoming = []
        for contact in contacts:
            assert contact.birthday is not None
            when = next_birthday(contact.birthday, today)
            days_until = (when - today).days
            if days_until <= p.days:
                upcoming.append(
                    {
                        "contact": {"id": contact.id, "name": contact.full_name},
                        "date": when.isoformat(),
                        "daysUntil": days_until,
                    }
                )
        upcoming.sort(key=lambda b: b["daysUntil"])
        return {"birthdays": upcoming, "count": len(upcoming)}
