"""Screen capability — capture displays into the ephemeral resource store.

Screenshots never travel inline: ``screen.capture`` stores the encoded image
and returns its id plus a ``GET /screenshot/{id}`` URL.
"""

from __future__ import annotations

import asyncio
from typing import Any, Protocol

from PIL import Image

from garden_bridge.capabilities.base import CapabilityHandler, Platform
from garden_bridge.capabilities.imaging import IMAGE_FORMATS, encode_image, normalize_format
from garden_bridge.exceptions import CommandError
from garden_bridge.logging import get_logger
from garden_bridge.permissions import PermissionGate
from garden_bridge.protocol.params.base import NoParams
from garden_bridge.protocol.params.screen import ScreenCaptureParams
from garden_bridge.resources.store import ResourceStore

log = get_logger(__name__)


class ScreenBackend(Protocol):
    def displays(self) -> list[dict[str, int]]:
        """Return ``[{left, top, width, height}]``; index 0 is the main display."""
        ...

    def grab(self, index: int) -> Image.Image: ...


class MssScreenBackend:
    """Capture through ``mss`` (X11, Wayland via XWayland, macOS, Windows)."""

    def displays(self) -> list[dict[str, int]]:
        import mss

        with mss.mss() as sct:
            # monitors[0] is the union of all screens; individual ones follow.
            monitors = sct.monitors[1:] or sct.monitors[:1]
            return [dict(m) for m in monitors]

    def grab(self, index: int) -> Image.Image:
        import mss

        with mss.mss() as sct:
            monitors = sct.monitors[1:] or sct.monitors[:1]
            shot = sct.grab(monitors[index])
        return Image.frombytes("RGB", shot.size, shot.bgra, "raw", "BGRX")


class ScreenHandler(CapabilityHandler):
    NAMESPACE = "screen"
    VERSION = "1.0.0"
    SUPPORTED_PLATFORMS = [Platform.ALL]
    PERMISSION = "screen"
    PERMISSION_DENIED_CODE = "SCREEN_CAPTURE_NOT_AUTHORIZED"
    COMMANDS = {
        "capture": ScreenCaptureParams,
        "list": NoParams,
    }

    def __init__(
        self,
        resources: ResourceStore,
        base_url: str,
        permissions: PermissionGate | None = None,
        backend: ScreenBackend | None = None,
    ) -> None:
        super().__init__(permissions)
        self._resources = resources
        self._base_url = base_url.rstrip("/")
        self._backend = backend or MssScreenBackend()

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def _action_capture(self, p: ScreenCaptureParams) -> dict[str, Any]:
        fmt = normalize_format(p.format)
        _, extension, mime_type = IMAGE_FORMATS[fmt]
        index = p.display or 0

        def _grab_and_encode() -> tuple[bytes, int, int]:
            displays = self._backend.displays()
            if index >= len(displays):
                raise CommandError("DISPLAY_NOT_FOUND", f"Display not found: {index}")
            image = self._backend.grab(index)
            return encode_image(image, fmt, p.quality), image.width, image.height

        try:
            data, width, height = await asyncio.to_thread(_grab_and_encode)
        except CommandError:
            raise
        except Exception as exc:
            log.warning("screen_capture_failed", display=index, error=str(exc))
            raise CommandError("CAPTURE_FAILED", f"Screen capture failed: {exc}") from exc

        try:
            entry = await self._resources.store(data, kind="screenshot", extension=extension, mime_type=mime_type)
        except OSError as exc:
            raise CommandError("STORAGE_FAILED", f"Failed to store screenshot: {exc}") from exc

        return {
            "resourceId": entry.id,
            "imageId": entry.id,
            "imageUrl": f"{self._base_url}/screenshot/{entry.id}",
            "format": fmt,
            "mimeType": mime_type,
            "width": width,
            "height": height,
            "size": entry.size,
            "expiresIn": entry.retention,
        }

    async def _action_list(self, p: NoParams) -> dict[str, Any]:
        try:
            monitors = await asyncio.to_thread(self._backend.displays)
        except Exception as exc:
            raise CommandError("CAPTURE_FAILED", f"Cannot enumerate displays: {exc}") from exc
        displays = [
            {
                "id": i,
                "width": m["width"],
                "height": m["height"],
                "frame": {"x": m["left"], "y": m["top"], "width": m["width"], "height": m["height"]},
            }
            for i, m in enumerate(monitors)
        ]
        return {"displays": displays, "count": len(displays), "mainDisplay": 0 if displays else None}
