"""Photos capability — browse a ``PhotoLibrary`` and export single photos.

``photos.get`` re-encodes the photo (optionally downscaled) into the
resource store as kind ``photo`` and answers with a ``/photo/{id}`` URL.
Listings are newest first.
"""

from __future__ import annotations

import asyncio
import math
from datetime import datetime
from pathlib import Path
from typing import Any

from garden_bridge.capabilities.base import CapabilityHandler, Platform, service_call
from garden_bridge.capabilities.imaging import IMAGE_FORMATS, encode_image, normalize_format
from garden_bridge.logging import get_logger
from garden_bridge.permissions import PermissionGate
from garden_bridge.protocol.params.photos import (
    PhotoAlbumsParams,
    PhotoGetParams,
    PhotoListParams,
    PhotoSearchParams,
)
from garden_bridge.resources.store import ResourceStore
from garden_bridge.services.photos import DirectoryPhotoLibrary, Photo, PhotoLibrary

log = get_logger(__name__)

EARTH_RADIUS_M = 6_371_000.0


def distance_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle (haversine) distance between two points."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = phi2 - phi1
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(a)))


def _in_range(photo: Photo, start: datetime | None, end: datetime | None) -> bool:
    if start is not None and photo.created_at < start:
        return False
    if end is not None and photo.created_at > end:
        return False
    return True


def _newest_first(photos: list[Photo]) -> list[Photo]:
    return sorted(photos, key=lambda ph: ph.created_at, reverse=True)


class PhotosHandler(CapabilityHandler):
    NAMESPACE = "photos"
    VERSION = "1.0.0"
    SUPPORTED_PLATFORMS = [Platform.ALL]
    PERMISSION = "photos"
    COMMANDS = {
        "list": PhotoListParams,
        "get": PhotoGetParams,
        "search": PhotoSearchParams,
        "getAlbums": PhotoAlbumsParams,
    }

    def __init__(
        self,
        resources: ResourceStore,
        base_url: str,
        permissions: PermissionGate | None = None,
        library: PhotoLibrary | None = None,
    ) -> None:
        super().__init__(permissions)
        self._resources = resources
        self._base_url = base_url.rstrip("/")
        self._library = library or DirectoryPhotoLibrary(Path("~/Pictures").expanduser())

    async def _action_list(self, p: PhotoListParams) -> dict[str, Any]:
        with service_call(self.NAMESPACE):
            photos = await self._library.photos(p.album)
        selected = _newest_first([ph for ph in photos if _in_range(ph, p.start_date, p.end_date)])[: p.limit]
        return {"photos": [ph.to_dict() for ph in selected], "count": len(selected)}

    async def _action_search(self, p: PhotoSearchParams) -> dict[str, Any]:
        with service_call(self.NAMESPACE):
            photos = await self._library.photos()

        results = []
        for photo in _newest_first(photos):
            if not _in_range(photo, p.start_date, p.end_date):
                continue
            entry = photo.to_dict()
            if p.latitude is not None and p.longitude is not None:
                if not photo.has_location:
                    continue
                assert photo.latitude is not None and photo.longitude is not None
                distance = distance_meters(p.latitude, p.longitude, photo.latitude, photo.longitude)
                if distance > p.radius:
                    continue
                entry["distanceMeters"] = round(distance, 1)
            results.append(entry)
            if len(results) >= p.limit:
                break
        return {"photos": results, "count": len(results)}

    async def _action_get(self, p: PhotoGetParams) -> dict[str, Any]:
        fmt = normalize_format(p.format)
        _, extension, mime_type = IMAGE_FORMATS[fmt]

        with service_call(self.NAMESPACE):
            photo = await self._library.get(p.id)
            image = await self._library.load_image(p.id)

        if p.size is not None:
            # thumbnail() keeps the aspect ratio and never upscales.
            await asyncio.to_thread(image.thumbnail, (p.size, p.size))
        data = await asyncio.to_thread(encode_image, image, fmt, p.quality)
        entry = await self._resources.store(data, kind="photo", extension=extension, mime_type=mime_type)
        log.info("photo_exported", photo=photo.id, size=entry.size)
        return {
            "photoId": photo.id,
            "resourceId": entry.id,
            "photoUrl": f"{self._base_url}/photo/{entry.id}",
            "format": fmt,
            "mimeType": mime_type,
            "width": image.width,
            "height": image.height,
            "size": entry.size,
            "createdAt": photo.created_at.isoformat(),
        }

    async def _action_get_albums(self, p: PhotoAlbumsParams) -> dict[str, Any]:
        with service_call(self.NAMESPACE):
            albums = await self._library.albums()
        if p.type != "all":
            albums = [a for a in albums if a.type == p.type]
        return {"albums": [a.to_dict() for a in albums], "count": len(albums)}
