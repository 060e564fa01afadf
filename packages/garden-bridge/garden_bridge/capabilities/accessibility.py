"""Accessibility capability — synthetic input and window inspection.

Driven by pyautogui (optional extra ``garden-bridge[gui]``), which needs a
display, so it is imported on first use rather than at startup.
"""

from __future__ import annotations

import asyncio
from typing import Any, Protocol

from garden_bridge.capabilities.base import CapabilityHandler, Platform
from garden_bridge.exceptions import CommandError
from garden_bridge.permissions import PermissionGate
from garden_bridge.protocol.params.automation import (
    ClickParams,
    PointParams,
    TypeTextParams,
    WindowListParams,
)


class InputBackend(Protocol):
    def click(self, x: float, y: float, button: str, clicks: int) -> None: ...

    def type_text(self, text: str, interval: float) -> None: ...

    def pixel(self, x: int, y: int) -> tuple[int, int, int]: ...

    def windows(self) -> list[dict[str, Any]]: ...


class PyAutoGuiBackend:
    def __init__(self) -> None:
        self._gui: Any = None

    def _pyautogui(self) -> Any:
        if self._gui is None:
            try:
                import pyautogui
            except (ImportError, KeyError, OSError):
                # KeyError: no DISPLAY on X11 hosts.
                raise CommandError.not_implemented(
                    "UI automation (pip install garden-bridge[gui] and run inside a desktop session)"
                ) from None
            # Corner-abort would turn a stray coordinate into a failed command.
            pyautogui.FAILSAFE = False
            self._gui = pyautogui
        return self._gui

    def click(self, x: float, y: float, button: str, clicks: int) -> None:
        self._pyautogui().click(x=x, y=y, clicks=clicks, button=button)

    def type_text(self, text: str, interval: float) -> None:
        self._pyautogui().write(text, interval=interval)

    def pixel(self, x: int, y: int) -> tuple[int, int, int]:
        rgb = self._pyautogui().pixel(x, y)
        return int(rgb[0]), int(rgb[1]), int(rgb[2])

    def windows(self) -> list[dict[str, Any]]:
        try:
            import pygetwindow as gw
        except ImportError:
            raise CommandError.not_implemented("Window enumeration (pygetwindow)") from None
        try:
            all_windows = gw.getAllWindows()
        except NotImplementedError:
            raise CommandError.not_implemented("Window enumeration on this platform") from None
        result = []
        for w in all_windows:
            result.append(
                {"title": w.title, "x": w.left, "y": w.top, "width": w.width, "height": w.height}
            )
        return result


class AccessibilityHandler(CapabilityHandler):
    NAMESPACE = "accessibility"
    VERSION = "1.0.0"
    SUPPORTED_PLATFORMS = [Platform.LINUX, Platform.MACOS, Platform.WINDOWS]
    PERMISSION = "accessibility"
    PERMISSION_DENIED_CODE = "ACCESSIBILITY_NOT_TRUSTED"
    COMMANDS = {
        "click": ClickParams,
        "type": TypeTextParams,
        "getElement": PointParams,
        "getWindows": WindowListParams,
    }

    def __init__(
        self,
        permissions: PermissionGate | None = None,
        backend: InputBackend | None = None,
    ) -> None:
        super().__init__(permissions)
        self._backend = backend or PyAutoGuiBackend()

    async def _action_click(self, p: ClickParams) -> dict[str, Any]:
        await asyncio.to_thread(self._backend.click, p.x, p.y, p.click_type, p.click_count)
        return {
            "success": True,
            "x": p.x,
            "y": p.y,
            "clickType": p.click_type,
            "clickCount": p.click_count,
        }

    async def _action_type(self, p: TypeTextParams) -> dict[str, Any]:
        await asyncio.to_thread(self._backend.type_text, p.text, p.delay / 1000)
        return {"success": True, "text": p.text, "length": len(p.text)}

    async def _action_get_element(self, p: PointParams) -> dict[str, Any]:
        x, y = int(p.x), int(p.y)
        try:
            r, g, b = await asyncio.to_thread(self._backend.pixel, x, y)
        except (IndexError, ValueError, OSError):
            return {"element": None}

        windows = await asyncio.to_thread(self._safe_windows)
        window = next(
            (
                w
                for w in windows
                if w["x"] <= x < w["x"] + w["width"] and w["y"] <= y < w["y"] + w["height"]
            ),
            None,
        )
        return {
            "element": {
                "x": x,
                "y": y,
                "color": f"#{r:02x}{g:02x}{b:02x}",
                "window": window,
            }
        }

    async def _action_get_windows(self, p: WindowListParams) -> dict[str, Any]:
        windows = await asyncio.to_thread(self._backend.windows)
        if p.app:
            needle = p.app.casefold()
            windows = [
                w
                for w in windows
                if needle in w.get("title", "").casefold() or needle in (w.get("app") or "").casefold()
            ]
        return {"windows": windows, "count": len(windows)}

    def _safe_windows(self) -> list[dict[str, Any]]:
        try:
            return self._backend.windows()
        except CommandError:
            return []
