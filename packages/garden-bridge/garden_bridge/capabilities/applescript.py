"""AppleScript capability — run scripts through ``osascript``.

Script failures keep the AppleScript error number in the code
(``APPLESCRIPT_ERROR_-1728``) so controllers can branch on it.
"""

from __future__ import annotations

import asyncio
import re
import shutil
from typing import Any

from garden_bridge.capabilities.base import CapabilityHandler, Platform
from garden_bridge.capabilities.shell import kill_process_tree
from garden_bridge.exceptions import CommandError
from garden_bridge.permissions import PermissionGate
from garden_bridge.protocol.constants import ErrorCode
from garden_bridge.protocol.params.automation import AppleScriptParams

# osascript reports "... execution error: Can't get window 1. (-1728)"
_ERROR_NUMBER = re.compile(r"\((-?\d+)\)\s*$")


def quote_applescript(text: str) -> str:
    """Return *text* as an AppleScript string literal."""
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


async def run_osascript(osascript: str, script: str, timeout: float) -> str:
    """Run *script* and return its stdout without the trailing newline.

    Raises:
        CommandError: ``TIMEOUT``, or ``APPLESCRIPT_ERROR_<n>`` on a script error.
    """
    proc = await asyncio.create_subprocess_exec(
        osascript,
        "-e",
        script,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        await asyncio.to_thread(kill_process_tree, proc.pid)
        await proc.communicate()
        raise CommandError(ErrorCode.TIMEOUT, f"AppleScript timed out after {timeout}s") from None

    if proc.returncode != 0:
        message = stderr.decode("utf-8", errors="replace").strip()
        match = _ERROR_NUMBER.search(message)
        number = match.group(1) if match else str(proc.returncode)
        raise CommandError(f"APPLESCRIPT_ERROR_{number}", message or "AppleScript failed")

    return stdout.decode("utf-8", errors="replace").rstrip("\n")


class AppleScriptHandler(CapabilityHandler):
    NAMESPACE = "applescript"
    VERSION = "1.0.0"
    SUPPORTED_PLATFORMS = [Platform.MACOS]
    PERMISSION = "automation"
    COMMANDS = {"execute": AppleScriptParams}

    def __init__(
        self,
        permissions: PermissionGate | None = None,
        osascript: str | None = None,
    ) -> None:
        super().__init__(permissions)
        self._osascript = osascript or shutil.which("osascript")

    async def _action_execute(self, p: AppleScriptParams) -> dict[str, Any]:
        if self._osascript is None:
            raise CommandError.not_implemented("AppleScript (osascript)")
        return {"result": await run_osascript(self._osascript, p.script, p.timeout)}
