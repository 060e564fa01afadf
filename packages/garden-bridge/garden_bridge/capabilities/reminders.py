"""Reminders capability — tasks in a ``ReminderService`` backend."""

from __future__ import annotations

from typing import Any

from garden_bridge.capabilities.base import CapabilityHandler, Platform, service_call
from garden_bridge.permissions import PermissionGate
from garden_bridge.protocol.params.base import NoParams
from garden_bridge.protocol.params.calendar import (
    IdParams,
    ReminderCompleteParams,
    ReminderCreateParams,
    ReminderListParams,
)
from garden_bridge.services.calendar import MemoryReminderService, ReminderService


class RemindersHandler(CapabilityHandler):
    NAMESPACE = "reminders"
    VERSION = "1.0.0"
    SUPPORTED_PLATFORMS = [Platform.ALL]
    PERMISSION = "reminders"
    COMMANDS = {
        "list": ReminderListParams,
        "create": ReminderCreateParams,
        "complete": ReminderCompleteParams,
        "delete": IdParams,
        "getLists": NoParams,
    }

    def __init__(
        self,
        service: ReminderService | None = None,
        permissions: PermissionGate | None = None,
    ) -> None:
        super().__init__(permissions)
        self._service = service or MemoryReminderService()

    async def _action_list(self, p: ReminderListParams) -> dict[str, Any]:
        with service_call(self.NAMESPACE):
            reminders = await self._service.list_reminders(p.list_name, p.include_completed)
        return {"reminders": [r.to_dict() for r in reminders], "count": len(reminders)}

    async def _action_create(self, p: ReminderCreateParams) -> dict[str, Any]:
        with service_call(self.NAMESPACE):
            reminder = await self._service.create_reminder(
                p.title, p.list_name, notes=p.notes, due=p.due_date, priority=p.priority
            )
        return {"success": True, "reminder": reminder.to_dict()}

    async def _action_complete(self, p: ReminderCompleteParams) -> dict[str, Any]:
        with service_call(self.NAMESPACE):
            reminder = await self._service.set_completed(p.id, p.completed)
        return {"success": True, "reminder": reminder.to_dict()}

    async def _action_delete(self, p: IdParams) -> dict[str, Any]:
        with service_call(self.NAMESPACE):
            await self._service.delete_reminder(p.id)
        return {"success": True, "id": p.id}

    async def _action_get_lists(self, p: NoParams) -> dict[str, Any]:
        with service_call(self.NAMESPACE):
            lists = await self._service.list_lists()
        return {"lists": [lst.to_dict() for lst in lists], "count": len(lists)}
