"""Camera capability — still photos through OpenCV.

OpenCV is an optional extra (``garden-bridge[camera]``) and is imported on
first use.  A camera is exclusive hardware, so one snap runs at a time per
handler; concurrent requests queue behind the lock.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Protocol

from PIL import Image

from garden_bridge.capabilities.base import CapabilityHandler, Platform
from garden_bridge.capabilities.imaging import IMAGE_FORMATS, encode_image, normalize_format
from garden_bridge.exceptions import CommandError
from garden_bridge.logging import get_logger
from garden_bridge.permissions import PermissionGate
from garden_bridge.protocol.params.base import NoParams
from garden_bridge.protocol.params.screen import CameraSnapParams
from garden_bridge.resources.store import ResourceStore

log = get_logger(__name__)

_MAX_CAMERA_INDEX = 4


class CameraBackend(Protocol):
    def cameras(self) -> list[dict[str, Any]]:
        """Return ``[{id, name, isConnected}]``; the first entry is the default."""
        ...

    def snap(self, camera_id: str, warmup: float) -> Image.Image | None: ...


class OpenCVCameraBackend:
    def __init__(self, max_index: int = _MAX_CAMERA_INDEX) -> None:
        self._max_index = max_index

    @staticmethod
    def _cv2() -> Any:
        try:
            import cv2
        except ImportError:
            raise CommandError.not_implemented("Camera capture (pip install garden-bridge[camera])") from None
        return cv2

    def cameras(self) -> list[dict[str, Any]]:
        cv2 = self._cv2()
        found = []
        for index in range(self._max_index):
            cap = cv2.VideoCapture(index)
            try:
                if cap.isOpened():
                    found.append({"id": str(index), "name": f"Camera {index}", "isConnected": True})
            finally:
                cap.release()
        return found

    def snap(self, camera_id: str, warmup: float) -> Image.Image | None:
        cv2 = self._cv2()
        cap = cv2.VideoCapture(int(camera_id))
        try:
            if not cap.isOpened():
                return None
            deadline = time.monotonic() + warmup
            ok, frame = cap.read()
            # Early frames are often dark while auto-exposure settles.
            while time.monotonic() < deadline:
                ok, frame = cap.read()
            if not ok or frame is None:
                return None
            rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
            return Image.fromarray(rgb)
        finally:
            cap.release()


class CameraHandler(CapabilityHandler):
    NAMESPACE = "camera"
    VERSION = "1.0.0"
    SUPPORTED_PLATFORMS = [Platform.ALL]
    PERMISSION = "camera"
    COMMANDS = {
        "snap": CameraSnapParams,
        "list": NoParams,
    }

    def __init__(
        self,
        resources: ResourceStore,
        base_url: str,
        permissions: PermissionGate | None = None,
        backend: CameraBackend | None = None,
    ) -> None:
        super().__init__(permissions)
        self._resources = resources
        self._base_url = base_url.rstrip("/")
        self._backend = backend or OpenCVCameraBackend()
        self._busy = asyncio.Lock()

    async def _action_snap(self, p: CameraSnapParams) -> dict[str, Any]:
        fmt = normalize_format(p.format)
        _, extension, mime_type = IMAGE_FORMATS[fmt]

        async with self._busy:
            cameras = await asyncio.to_thread(self._backend.cameras)
            if not cameras:
                raise CommandError("NO_CAMERA", "No camera available")
            if p.camera is None:
                camera = cameras[0]
            else:
                camera = next((c for c in cameras if c["id"] == p.camera), None)
                if camera is None:
                    raise CommandError("CAMERA_NOT_FOUND", f"Camera not found: {p.camera}")

            image = await asyncio.to_thread(self._backend.snap, camera["id"], p.warmup)
            if image is None:
                raise CommandError("CAPTURE_FAILED", "Failed to get image data")

        data = await asyncio.to_thread(encode_image, image, fmt, p.quality)
        entry = await self._resources.store(data, kind="photo", extension=extension, mime_type=mime_type)
        log.info("camera_snap", camera=camera["id"], size=entry.size)
        return {
            "resourceId": entry.id,
            "imageId": entry.id,
            "imageUrl": f"{self._base_url}/resources/{entry.id}",
            "format": fmt,
            "mimeType": mime_type,
            "camera": camera["name"],
            "width": image.width,
            "height": image.height,
            "size": entry.size,
        }

    async def _action_list(self, p: NoParams) -> dict[str, Any]:
        cameras = await asyncio.to_thread(self._backend.cameras)
        return {"cameras": cameras, "count": len(cameras)}

