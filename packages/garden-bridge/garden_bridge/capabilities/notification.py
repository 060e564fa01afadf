"""Notification capability — desktop notifications.

Uses ``notify-send`` (libnotify) on Linux and ``osascript`` on macOS.
"""

from __future__ import annotations

import asyncio
import shutil
import uuid
from typing import Any

from garden_bridge.capabilities.applescript import quote_applescript
from garden_bridge.capabilities.base import CapabilityHandler, Platform, current_platform
from garden_bridge.exceptions import CommandError
from garden_bridge.permissions import PermissionGate
from garden_bridge.protocol.params.automation import NotificationParams

_NOTIFY_TIMEOUT = 10.0


def build_notify_argv(p: NotificationParams, platform: Platform | None) -> list[str] | None:
    """Return the argv that posts *p* on *platform*, or None when no notifier exists."""
    if platform is Platform.MACOS and shutil.which("osascript"):
        script = f"display notification {quote_applescript(p.body or '')}"
        script += f" with title {quote_applescript(p.title)}"
        if p.subtitle:
            script += f" subtitle {quote_applescript(p.subtitle)}"
        if p.sound:
            script += ' sound name "default"'
        return ["osascript", "-e", script]

    notify_send = shutil.which("notify-send")
    if notify_send:
        summary = f"{p.title}: {p.subtitle}" if p.subtitle else p.title
        argv = [notify_send, "--app-name=GardenBridge", summary]
        if p.body:
            argv.append(p.body)
        return argv
    return None


class NotificationHandler(CapabilityHandler):
    NAMESPACE = "notification"
    VERSION = "1.0.0"
    SUPPORTED_PLATFORMS = [Platform.LINUX, Platform.MACOS]
    PERMISSION = "notifications"
    COMMANDS = {"send": NotificationParams}

    def __init__(self, permissions: PermissionGate | None = None) -> None:
        super().__init__(permissions)

    async def _action_send(self, p: NotificationParams) -> dict[str, Any]:
        argv = build_notify_argv(p, current_platform())
        if argv is None:
            raise CommandError.not_implemented("Desktop notifications (notify-send or osascript)")

        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout=_NOTIFY_TIMEOUT)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.communicate()
            raise CommandError("NOTIFICATION_FAILED", "Notifier did not respond") from None

        if proc.returncode != 0:
            raise CommandError(
                "NOTIFICATION_FAILED",
                stderr.decode("utf-8", errors="replace").strip() or "Notifier failed",
            )
        return {"success": True, "id": p.id or uuid.uuid4().hex}
